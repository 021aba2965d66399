"""Utility functions shared by the content pipeline."""

import json
import re
import unicodedata
from typing import Any, Dict, Optional


def strip_accents(text: str) -> str:
    """Fold accented characters to their ASCII base ("Télégraphe" -> "Telegraphe")."""
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(char for char in normalized if not unicodedata.combining(char))


def slugify(name: str) -> str:
    """Build a URL slug from a display name.

    Args:
        name: Display name, e.g. "Col du Télégraphe"

    Returns:
        Lowercase ASCII slug, e.g. "col-du-telegraphe"
    """
    slug = strip_accents(name).lower()
    slug = re.sub(r"[^a-z0-9\s-]", " ", slug)
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def is_empty(value: Any) -> bool:
    """Check whether a field value counts as missing.

    None, blank strings and empty lists/dicts are empty. Zero and False are
    real values.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple, set)):
        return len(value) == 0
    return False


def get_path(data: Dict[str, Any], path: str) -> Optional[Any]:
    """Read a dotted path ("description.fr") from nested dicts."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def canonical_json(value: Any) -> str:
    """Stable JSON text used as an identity key for unkeyed values."""
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)
