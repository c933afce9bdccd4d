"""
Core Utility Functions.

Text and record helpers shared by the discovery components.
"""

import re
import unicodedata
from typing import Any, List, Optional


# =============================================================================
# Text Normalisation
# =============================================================================

_WHITESPACE_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"[a-z]+")
_CAMEL_RE = re.compile(r"([a-z])([A-Z])")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9-]+")
_SLUG_DASHES_RE = re.compile(r"-{2,}")


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def tokenize_words(text: Optional[str]) -> List[str]:
    """
    Lower-case alphabetic word tokens of ``text``.

    Apostrophes and punctuation separate words, so "Men's" yields
    ``["men", "s"]`` and "leather" never contains the word "her".
    """
    if not text:
        return []
    return _WORD_RE.findall(text.lower())


def fold_accents(text: str) -> str:
    """Strip combining marks ("Chloé" -> "Chloe", "Hermès" -> "Hermes")."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def split_camel_case(text: str) -> str:
    """Insert a space at lower-to-upper case boundaries ("NewIn" -> "New In")."""
    return _CAMEL_RE.sub(r"\1 \2", text)


def title_case(text: str) -> str:
    """Capitalise the first letter of each space-separated word, lower-case the rest."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" ") if word)


def slugify(text: str) -> str:
    """
    Stable identifier for a facet value.

    Slashes, dots and whitespace become hyphens, so "4.5" and "45" stay
    distinct while "Off White" and "off-white" collapse to one id.
    """
    lowered = fold_accents(text).strip().lower()
    lowered = re.sub(r"[\s/._]+", "-", lowered)
    lowered = _SLUG_STRIP_RE.sub("", lowered)
    lowered = _SLUG_DASHES_RE.sub("-", lowered)
    return lowered.strip("-")


def split_csv(value: Any) -> List[Any]:
    """
    Expand a comma-separated string into a list; lists pass through.

    Non-string list elements are kept as they are so the caller can reject
    them as structural errors.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        out: List[Any] = []
        for item in value:
            if isinstance(item, str):
                out.extend(part.strip() for part in item.split(",") if part.strip())
            else:
                out.append(item)
        return out
    return [value]


# =============================================================================
# Record Access
# =============================================================================

def resolve_path(record: Any, path: str) -> List[Any]:
    """
    Collect every value reachable at a dotted ``path`` of ``record``.

    Lists along the path fan out, so ``category_refs.category_id`` yields
    one value per reference. Dicts and attribute objects (pydantic models)
    are both supported. ``None`` values are skipped.

    Args:
        record: Dict or object to read from.
        path: Dotted field path.

    Returns:
        Flat list of the non-None values found.
    """
    current: List[Any] = [record]
    for key in path.split("."):
        nxt: List[Any] = []
        for obj in current:
            if obj is None:
                continue
            if isinstance(obj, dict):
                value = obj.get(key)
            else:
                value = getattr(obj, key, None)
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                nxt.extend(v for v in value if v is not None)
            else:
                nxt.append(value)
        current = nxt
    return current
