# services/content_hash.py
import hashlib
from typing import Optional

# ASCII unit separator; str.split() treats it as whitespace, so extracted slide text never carries one
SEPARATOR = "\x1f"
DEFAULT_DOCUMENT_ID = "default"


def content_hash(
    document_id: Optional[str],
    page_number: int,
    total_pages: int,
    current_text: Optional[str],
    previous_text: Optional[str] = None,
    next_text: Optional[str] = None,
) -> str:
    """
    Cache key for one slide's narration: sha256 hex over every input that shapes the prompt.
    Missing optional texts hash as empty strings.
    """
    parts = [
        document_id or DEFAULT_DOCUMENT_ID,
        str(page_number),
        str(total_pages),
        current_text or "",
        previous_text or "",
        next_text or "",
    ]
    return hashlib.sha256(SEPARATOR.join(parts).encode("utf-8")).hexdigest()


def audio_key(digest: str) -> str:
    return f"audio/{digest}.mp3"
