"""
Ordered category rule table.

Category inference is data: each rule maps a set of patterns to a spot
category, and the first matching rule wins. The same table classifies
provider place types ('coffee_shop'), free-text spot names ('Boomtown Coffee')
and check-in spot types.
"""
import re
from typing import Iterable, List, Optional, Tuple

from locations.models import SpotCategory


# (pattern, category) - evaluated top to bottom
CATEGORY_RULES: List[Tuple[str, str]] = [
    (r'\blibrar(y|ies)\b|\bstudy\b', SpotCategory.LIBRARY),
    (r'cowork|\bwework\b|workspace|co-work', SpotCategory.COWORKING),
    (r'\bbook(store|shop)s?\b|book_store', SpotCategory.BOOKSTORE),
    (r'universit|college|campus|\bschool\b', SpotCategory.CAMPUS),
    (r'coffee|\bcafe\b|café|espresso|\btea\b|bakery', SpotCategory.CAFE),
]

_COMPILED = [(re.compile(pattern, re.IGNORECASE), category) for pattern, category in CATEGORY_RULES]


def match_category(text: Optional[str]) -> Optional[str]:
    """
    Returns the category of the first rule matching the text, or None.
    Underscores are treated as word separators so provider types match too.
    """
    if not text or not isinstance(text, str):
        return None

    normalized = text.replace('_', ' ')
    for pattern, category in _COMPILED:
        if pattern.search(normalized) or pattern.search(text):
            return str(category)
    return None


def infer_category(*candidates: Iterable[str], default: str = SpotCategory.OTHER) -> str:
    """
    Infers a category from several text sources (explicit type, provider types,
    spot name), trying each source in order.

    Args:
        candidates: strings or iterables of strings, most authoritative first
        default: category returned when no rule matches

    Returns:
        str: SpotCategory value
    """
    valid = set(SpotCategory.values)

    for candidate in candidates:
        values = [candidate] if isinstance(candidate, str) or candidate is None else list(candidate)
        for value in values:
            if not value:
                continue
            if isinstance(value, str) and value.strip().lower() in valid:
                return value.strip().lower()
            category = match_category(value)
            if category:
                return category

    return str(default)
