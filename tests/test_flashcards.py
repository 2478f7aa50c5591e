"""Tests for flashcard API endpoints."""

from collections.abc import Callable

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cardshelf.core.db.schemas import Flashcard, User


class TestCreateFlashcard:
    """Test suite for POST /v1/flashcards."""

    def test_create_flashcard_success(
        self, client: TestClient, make_collection: Callable, alice: dict
    ) -> None:
        collection = make_collection(alice)

        response = client.post(
            "/v1/flashcards",
            json={
                "question": "What is 'thank you' in Swedish?",
                "answer": "Tack",
                "collectionId": collection["id"],
            },
            headers=alice,
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["question"] == "What is 'thank you' in Swedish?"
        assert data["answer"] == "Tack"
        assert data["collectionId"] == collection["id"]
        assert data["creatorId"] == collection["creatorId"]

    def test_collection_not_found(self, client: TestClient, alice: dict) -> None:
        response = client.post(
            "/v1/flashcards",
            json={"question": "Question?", "answer": "Answer", "collectionId": 99999},
            headers=alice,
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "Collection not found"

    def test_cannot_add_to_foreign_public_collection(
        self, client: TestClient, make_collection: Callable, alice: dict, bob: dict
    ) -> None:
        collection = make_collection(bob, isPublic=True)

        response = client.post(
            "/v1/flashcards",
            json={"question": "Question?", "answer": "Answer", "collectionId": collection["id"]},
            headers=alice,
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert (
            response.json()["message"]
            == "You can't create flashcards in collections that are not created by you"
        )

    def test_question_too_short(
        self, client: TestClient, make_collection: Callable, alice: dict
    ) -> None:
        collection = make_collection(alice)

        response = client.post(
            "/v1/flashcards",
            json={"question": "Hi", "answer": "Hej", "collectionId": collection["id"]},
            headers=alice,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "question" in response.json()["errors"]

    def test_answer_too_long(
        self, client: TestClient, make_collection: Callable, alice: dict
    ) -> None:
        collection = make_collection(alice)

        response = client.post(
            "/v1/flashcards",
            json={"question": "Question?", "answer": "a" * 1001, "collectionId": collection["id"]},
            headers=alice,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "answer" in response.json()["errors"]

    def test_markup_only_answer_is_rejected(
        self, client: TestClient, make_collection: Callable, alice: dict
    ) -> None:
        collection = make_collection(alice)

        response = client.post(
            "/v1/flashcards",
            json={
                "question": "Question?",
                "answer": "<img src=x onerror=alert(1)>",
                "collectionId": collection["id"],
            },
            headers=alice,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "answer" in response.json()["errors"]

    def test_missing_collection_id(self, client: TestClient, alice: dict) -> None:
        response = client.post(
            "/v1/flashcards", json={"question": "Question?", "answer": "Answer"}, headers=alice
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "collectionId" in response.json()["errors"]


class TestGetFlashcard:
    """Test suite for GET /v1/flashcards/:id."""

    def test_owner_gets_flashcard(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
    ) -> None:
        card = make_flashcard(alice, make_collection(alice)["id"])

        response = client.get(f"/v1/flashcards/{card['id']}", headers=alice)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == card

    def test_stranger_denied_on_private_collection(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
        bob: dict,
    ) -> None:
        card = make_flashcard(alice, make_collection(alice)["id"])

        response = client.get(f"/v1/flashcards/{card['id']}", headers=bob)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["message"] == "Access denied to this flashcard"
        assert card["question"] not in response.text

    def test_stranger_reads_card_in_public_collection(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
        bob: dict,
    ) -> None:
        card = make_flashcard(alice, make_collection(alice, isPublic=True)["id"])

        response = client.get(f"/v1/flashcards/{card['id']}", headers=bob)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == card["id"]

    def test_flashcard_not_found(self, client: TestClient, alice: dict) -> None:
        response = client.get("/v1/flashcards/99999", headers=alice)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "Flashcard not found"

    def test_orphaned_flashcard(
        self, client: TestClient, run_db: Callable, alice: dict
    ) -> None:
        client.get("/v1/users/me", headers=alice)

        async def insert_orphan(session: AsyncSession) -> int:
            user_id = (
                await session.execute(select(User.id).where(User.uid == "alice-uid"))
            ).scalar_one()
            card = Flashcard(
                collection_id=424242,
                creator_id=user_id,
                question="Lost question?",
                answer="Lost answer",
            )
            session.add(card)
            await session.flush()
            return card.id

        card_id = run_db(insert_orphan)

        response = client.get(f"/v1/flashcards/{card_id}", headers=alice)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "Associated collection not found"


class TestUpdateFlashcard:
    """Test suite for PATCH /v1/flashcards/:id."""

    def test_partial_update(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
    ) -> None:
        card = make_flashcard(alice, make_collection(alice)["id"], answer="Hej")

        response = client.patch(
            f"/v1/flashcards/{card['id']}", json={"answer": "Hej hej"}, headers=alice
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["answer"] == "Hej hej"
        assert data["question"] == card["question"]

    def test_null_answer_is_rejected(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
    ) -> None:
        card = make_flashcard(alice, make_collection(alice)["id"])

        response = client.patch(
            f"/v1/flashcards/{card['id']}", json={"answer": None}, headers=alice
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "answer" in response.json()["errors"]

    def test_saving_values_read_back_keeps_them(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
    ) -> None:
        card = make_flashcard(
            alice,
            make_collection(alice)["id"],
            question="Is x < y && y > z?",
            answer="Only if it's transitive",
        )
        url = f"/v1/flashcards/{card['id']}"
        current = client.get(url, headers=alice).json()

        for _ in range(2):
            response = client.patch(
                url,
                json={"question": current["question"], "answer": current["answer"]},
                headers=alice,
            )
            assert response.status_code == status.HTTP_200_OK
            current = response.json()

        assert current["question"] == "Is x < y && y > z?"
        assert current["answer"] == "Only if it's transitive"

    def test_stranger_cannot_update_card_in_public_collection(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
        bob: dict,
    ) -> None:
        card = make_flashcard(alice, make_collection(alice, isPublic=True)["id"])

        response = client.patch(
            f"/v1/flashcards/{card['id']}", json={"answer": "Vandalized"}, headers=bob
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["message"] == "You don't have permission to modify this flashcard"
        assert client.get(f"/v1/flashcards/{card['id']}", headers=alice).json()[
            "answer"
        ] == card["answer"]


class TestDeleteFlashcard:
    """Test suite for DELETE /v1/flashcards/:id."""

    def test_delete_flashcard(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
    ) -> None:
        card = make_flashcard(alice, make_collection(alice)["id"])

        response = client.delete(f"/v1/flashcards/{card['id']}", headers=alice)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert (
            client.get(f"/v1/flashcards/{card['id']}", headers=alice).status_code
            == status.HTTP_404_NOT_FOUND
        )

    def test_stranger_cannot_delete(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
        bob: dict,
    ) -> None:
        card = make_flashcard(alice, make_collection(alice, isPublic=True)["id"])

        response = client.delete(f"/v1/flashcards/{card['id']}", headers=bob)

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestListCollectionFlashcards:
    """Test suite for GET /v1/flashcards/collections/:id."""

    def test_lists_cards_in_creation_order(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
    ) -> None:
        collection = make_collection(alice)
        first = make_flashcard(alice, collection["id"], question="First question?")
        second = make_flashcard(alice, collection["id"], question="Second question?")

        response = client.get(f"/v1/flashcards/collections/{collection['id']}", headers=alice)

        assert response.status_code == status.HTTP_200_OK
        assert [c["id"] for c in response.json()["flashcards"]] == [first["id"], second["id"]]

    def test_stranger_cannot_list_private_collection(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
        bob: dict,
    ) -> None:
        collection = make_collection(alice)
        make_flashcard(alice, collection["id"])

        response = client.get(f"/v1/flashcards/collections/{collection['id']}", headers=bob)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_stranger_lists_public_collection(
        self,
        client: TestClient,
        make_collection: Callable,
        make_flashcard: Callable,
        alice: dict,
        bob: dict,
    ) -> None:
        collection = make_collection(alice, isPublic=True)
        make_flashcard(alice, collection["id"])

        response = client.get(f"/v1/flashcards/collections/{collection['id']}", headers=bob)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["flashcards"]) == 1

    def test_empty_collection(
        self, client: TestClient, make_collection: Callable, alice: dict
    ) -> None:
        collection = make_collection(alice)

        response = client.get(f"/v1/flashcards/collections/{collection['id']}", headers=alice)

        assert response.json() == {"flashcards": []}
