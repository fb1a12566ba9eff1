"""Text processing utilities: normalization for filtering, truncation."""

import re
import unicodedata


def fold_text(text: str) -> str:
    """Fold text for matching: strip diacritics ("ö" -> "o") and casefold."""
    if not text or not isinstance(text, str):
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return unicodedata.normalize("NFC", stripped).casefold()


def normalize_text(text: str) -> str:
    """Normalize whitespace and newlines."""
    if not text or not isinstance(text, str):
        return ""
    text = text.replace("\r\n", "\n")
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def truncate_text(text: str, max_length: int = 100, ellipsis: str = "...") -> str:
    """Truncate text to max_length, appending ellipsis if truncated."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(ellipsis)] + ellipsis
