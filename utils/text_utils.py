"""
Text utilities for handling Polish product names.

Used for catalog keyword extraction and name cleanup.
"""

import re
from typing import Optional


# Tokens this short are unit abbreviations or stray letters ("1l", "g", "uo").
MIN_KEYWORD_LENGTH = 3

POLISH_LETTERS = "ąćęłńóśźż"

_NON_KEYWORD_CHARS = re.compile(f"[^a-z0-9{POLISH_LETTERS}]")


def normalize_keywords(text: Optional[str]) -> set[str]:
    """
    Turn a product name or brand into a comparable keyword set.

    - "Mleko UHT 2% 1L" → {"mleko", "uht"}
    - "Śmietana 18%, Łaciate" → {"śmietana", "łaciate"}
    - "!!!" → set()

    Args:
        text: Free-text name or brand (may be None)

    Returns:
        Set of lower-case tokens at least MIN_KEYWORD_LENGTH long.
        An empty set means the text cannot be compared.
    """
    if not text:
        return set()

    cleaned = _NON_KEYWORD_CHARS.sub(" ", text.lower())

    return {
        token for token in cleaned.split()
        if len(token) >= MIN_KEYWORD_LENGTH
    }


def clean_product_name(name: Optional[str], max_length: int = 200) -> Optional[str]:
    """
    Clean product name for storage (preserves case and diacritics).

    - Strips whitespace
    - Collapses internal whitespace runs
    - Truncates to max length
    - Returns None for empty/whitespace-only strings

    Args:
        name: Raw product name from import or receipt
        max_length: Maximum characters to store

    Returns:
        Cleaned name or None
    """
    if not name:
        return None

    name = re.sub(r"\s+", " ", name).strip()

    if not name:
        return None

    if len(name) > max_length:
        name = name[:max_length].rstrip()

    return name
