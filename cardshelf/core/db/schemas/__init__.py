# Import models so Alembic and Base metadata are aware of them
from .auth import User, user_added_collections  # noqa: F401
from .flashcards import Collection, Flashcard  # noqa: F401
