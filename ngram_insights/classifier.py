"""
Gram Classifier for N-gram Insights
Labels n-grams and search terms as Brand, Dimension or Non-brand.
"""

import re
from typing import Iterable, Tuple

from .models import GramType


# Size / dimension strings such as "120x200", "3 4", "160*200", "1.5"
DIMENSION_PATTERN = re.compile(r'^\d[\d\s.,*x×]*$', re.IGNORECASE)


def normalize_brand_terms(brand_terms: Iterable[str]) -> Tuple[str, ...]:
    """Lowercase and trim a brand vocabulary, dropping blanks."""
    if not brand_terms:
        return ()
    if isinstance(brand_terms, str):
        brand_terms = brand_terms.split(',')
    cleaned = (str(term).lower().strip() for term in brand_terms)
    return tuple(term for term in cleaned if term)


def contains_brand(text: str, brand_terms: Iterable[str]) -> bool:
    """
    Check whether text contains any brand substring.

    Misspellings and transliterations must be listed explicitly in
    brand_terms; there is no fuzzy matching.
    """
    lowered = (text or '').lower()
    return any(brand in lowered for brand in normalize_brand_terms(brand_terms))


def is_dimension(text: str) -> bool:
    """Check whether text is a numeric size/dimension string."""
    return bool(DIMENSION_PATTERN.match((text or '').strip()))


def classify_gram(gram: str, brand_terms: Iterable[str] = ()) -> GramType:
    """
    Classify a gram. First match wins: Brand, then Dimension, then Non-brand.

    Args:
        gram: N-gram or search term text
        brand_terms: Brand vocabulary (substrings, case-insensitive)

    Returns:
        GramType label
    """
    if contains_brand(gram, brand_terms):
        return GramType.BRAND

    if is_dimension(gram):
        return GramType.DIMENSION

    return GramType.NON_BRAND
