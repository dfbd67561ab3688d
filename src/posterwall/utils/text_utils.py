"""Text processing utilities."""

import re
from difflib import SequenceMatcher


def normalize_title(title: str) -> str:
    """Normalize a title for fuzzy comparison.

    Args:
        title: Original title.

    Returns:
        Lowercased title without leading article, punctuation or extra spaces.
    """
    title = title.lower()

    prefixes = ["the ", "a ", "an "]
    for prefix in prefixes:
        if title.startswith(prefix):
            title = title[len(prefix) :]
            break

    title = re.sub(r"[^\w\s]", " ", title)
    title = re.sub(r"\s+", " ", title)
    return title.strip()


def identity_key(title: str) -> str:
    """Normalize a title for use in stable identifiers.

    Only case and whitespace are folded so that distinct titles never collide.

    Args:
        title: Title to normalize.

    Returns:
        Casefolded title with collapsed whitespace.
    """
    return re.sub(r"\s+", " ", title).strip().casefold()


def calculate_similarity(text1: str, text2: str) -> float:
    """Calculate similarity between two text strings.

    Args:
        text1: First text.
        text2: Second text.

    Returns:
        Similarity score between 0.0 and 1.0.
    """
    if not text1 or not text2:
        return 0.0

    norm1 = normalize_title(text1)
    norm2 = normalize_title(text2)

    return SequenceMatcher(None, norm1, norm2).ratio()


def titles_match_exactly(text1: str, text2: str) -> bool:
    """Check whether two titles are equal after normalization."""
    if not text1 or not text2:
        return False
    return normalize_title(text1) == normalize_title(text2)
