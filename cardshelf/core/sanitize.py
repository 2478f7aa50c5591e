import html
from typing import Optional

import nh3


# Entity-encoded markup ("&lt;b&gt;") turns into real tags once decoded,
# so cleaning repeats until the text stops changing.
MAX_PASSES = 5


def clean_text(value: str) -> str:
    """Strip markup from user-supplied free text, keeping the plain text as typed.

    The result is stable: cleaning an already cleaned value returns it unchanged.
    """
    text = value.strip()
    for _ in range(MAX_PASSES):
        cleaned = html.unescape(nh3.clean(text, tags=set())).strip()
        if cleaned == text:
            break
        text = cleaned
    else:
        # Deeply nested encodings keep their escaped form
        text = nh3.clean(text, tags=set())
    return text


def clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return clean_text(value)
