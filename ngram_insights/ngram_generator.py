"""
N-gram Generator Utility for N-gram Insights
Extracts unigrams, bigrams and trigrams from search terms and aggregates
their performance.
"""

import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from .classifier import classify_gram, normalize_brand_terms
from .metrics import (calculate_cpa, calculate_cpc, calculate_ctr,
                      calculate_cvr, calculate_roas)
from .models import NGram, NGramSummary, SearchTermRow

logger = logging.getLogger(__name__)


DEFAULT_MAX_N = 3
DEFAULT_MIN_SUPPORT = 2

# Source markers such as "[PMax Insight]" prepended by the data fetchers
MARKER_PATTERN = re.compile(r'\[[^\]]*\]')


def strip_markers(term: str) -> str:
    """Remove bracketed source markers, keeping the original casing."""
    if not term:
        return ''
    return ' '.join(MARKER_PATTERN.sub(' ', term).split())


def clean_search_term(term: str) -> str:
    """
    Normalize a search term: strip markers, lowercase, collapse whitespace.

    Args:
        term: Raw search term

    Returns:
        Normalized search term
    """
    if not isinstance(term, str):
        return ''
    return strip_markers(term).lower()


def tokenize(term: str) -> List[str]:
    """
    Tokenize a normalized search term into words.

    Args:
        term: Cleaned search term

    Returns:
        List of words
    """
    if not term:
        return []

    return term.split()


def extract_ngrams(words: List[str], n: int) -> List[str]:
    """
    Extract every contiguous n-word sequence from a list of words.

    Args:
        words: List of words from a search term
        n: Window size

    Returns:
        List of n-grams (empty when there are fewer than n words)
    """
    if n < 1 or len(words) < n:
        return []

    return [' '.join(words[i:i + n]) for i in range(len(words) - n + 1)]


def _new_bucket() -> dict:
    return {'impressions': 0, 'clicks': 0, 'cost': 0.0, 'conversions': 0.0,
            'conversion_value': 0.0, 'search_terms': set()}


def build_ngrams(rows: Iterable[SearchTermRow], max_n: int = DEFAULT_MAX_N,
                 min_support: int = DEFAULT_MIN_SUPPORT,
                 brand_terms: Iterable[str] = ()) -> List[NGram]:
    """
    Build the classified n-gram table for a set of search term rows.

    Metrics are added once per occurrence of a gram in a row. term_count is
    the number of distinct normalized search terms containing the gram, so a
    term repeated across campaigns, or a word repeated inside one term,
    counts once toward min_support.

    Args:
        rows: Search term rows
        max_n: Largest window size
        min_support: Minimum distinct search terms per gram
        brand_terms: Brand vocabulary for classification

    Returns:
        N-grams sorted by cost, highest first
    """
    brands = normalize_brand_terms(brand_terms)
    ngram_data: Dict[Tuple[str, int], dict] = defaultdict(_new_bucket)
    row_count = 0

    for row in rows:
        row_count += 1
        words = tokenize(clean_search_term(row.search_term))

        if not words:
            continue

        term_key = ' '.join(words)

        for n in range(1, max_n + 1):
            for gram in extract_ngrams(words, n):
                bucket = ngram_data[(gram, n)]
                bucket['impressions'] += row.impressions
                bucket['clicks'] += row.clicks
                bucket['cost'] += row.cost
                bucket['conversions'] += row.conversions
                bucket['conversion_value'] += row.conversion_value
                bucket['search_terms'].add(term_key)

    result = []
    for (gram, n), metrics in ngram_data.items():
        term_count = len(metrics['search_terms'])
        if term_count < min_support:
            continue

        result.append(NGram(
            gram=gram,
            n=n,
            term_count=term_count,
            impressions=metrics['impressions'],
            clicks=metrics['clicks'],
            cost=metrics['cost'],
            conversions=metrics['conversions'],
            conversion_value=metrics['conversion_value'],
            roas=calculate_roas(metrics['conversion_value'], metrics['cost']),
            cpa=calculate_cpa(metrics['cost'], metrics['conversions']),
            ctr=calculate_ctr(metrics['clicks'], metrics['impressions']),
            cpc=calculate_cpc(metrics['cost'], metrics['clicks']),
            conversion_rate=calculate_cvr(metrics['conversions'], metrics['clicks']),
            gram_type=classify_gram(gram, brands),
        ))

    result.sort(key=lambda g: g.cost, reverse=True)

    logger.debug("Built %d n-grams (%d before support filter) from %d rows",
                 len(result), len(ngram_data), row_count)

    return result


def filter_by_size(ngrams: List[NGram], n: int = 0) -> List[NGram]:
    """Keep grams of one window size; n=0 keeps all."""
    if not n:
        return list(ngrams)
    return [g for g in ngrams if g.n == n]


def get_ngram_summary(ngrams: List[NGram], rows: Iterable[SearchTermRow] = ()) -> NGramSummary:
    """
    Get a summary of the N-gram analysis.

    Args:
        ngrams: N-gram table
        rows: Source rows, for the distinct search term count

    Returns:
        Summary counts
    """
    terms = {clean_search_term(r.search_term) for r in rows}
    terms.discard('')

    return NGramSummary(
        search_term_count=len(terms),
        unigram_count=sum(1 for g in ngrams if g.n == 1),
        bigram_count=sum(1 for g in ngrams if g.n == 2),
        trigram_count=sum(1 for g in ngrams if g.n == 3),
    )
