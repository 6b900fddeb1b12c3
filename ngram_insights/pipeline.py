"""
Analysis pipeline for N-gram Insights.
Runs the whole derivation (rows -> n-grams -> KPIs -> wasteful terms) as one
pure function, memoized on a fingerprint of its inputs.
"""

import logging
from typing import Iterable, Optional

from .cache import AnalysisCache, fingerprint
from .config import AnalysisSettings
from .metrics import compute_kpis
from .models import NGramAnalysis, SearchTermRow
from .ngram_generator import build_ngrams, get_ngram_summary
from .suggestions import (compute_baselines, compute_wasteful_terms,
                          find_expansion_candidates, find_negative_candidates,
                          summarize_waste, top_wasteful, top_winning)

logger = logging.getLogger(__name__)


CACHE_CATEGORY = 'analysis'
DEFAULT_PERIOD_DAYS = 30


def derive_analysis(rows: Iterable[SearchTermRow], settings: AnalysisSettings,
                    period_days: int) -> NGramAnalysis:
    """Compute the full analysis without caching."""
    rows = list(rows)

    ngrams = build_ngrams(rows, settings.max_n, settings.min_support, settings.brand_terms)
    avg_cpa, avg_ctr = compute_baselines(rows, settings.default_cpa)

    wasteful = compute_wasteful_terms(
        rows,
        min_cost=settings.min_cost,
        min_clicks=settings.min_clicks,
        period_days=period_days,
        avg_cpa=avg_cpa,
        avg_ctr=avg_ctr,
        include_converting=settings.include_converting,
        brand_terms=settings.brand_terms,
    )

    return NGramAnalysis(
        ngrams=ngrams,
        kpis=compute_kpis(ngrams),
        ngram_summary=get_ngram_summary(ngrams, rows),
        wasteful_terms=wasteful,
        waste_summary=summarize_waste(wasteful),
        negative_candidates=find_negative_candidates(ngrams, settings.min_cost, settings.min_support),
        expansion_candidates=find_expansion_candidates(ngrams, settings.min_support),
        top_winning=top_winning(ngrams),
        top_wasteful=top_wasteful(ngrams),
        period_days=period_days,
        avg_cpa=avg_cpa,
        avg_ctr=avg_ctr,
    )


def analyze_search_terms(rows: Iterable[SearchTermRow],
                         settings: Optional[AnalysisSettings] = None,
                         period_days: Optional[int] = None,
                         cache: Optional[AnalysisCache] = None) -> NGramAnalysis:
    """
    Analyze a set of search term rows.

    Filters (device, campaign, date range) must be applied to rows before
    calling. With a cache, an identical row set and settings return the
    stored result instead of recomputing.

    Args:
        rows: Search term rows
        settings: Thresholds and brand vocabulary (defaults when None)
        period_days: Length of the reporting period in days
        cache: Optional cache for memoization

    Returns:
        NGramAnalysis
    """
    rows = list(rows)
    settings = settings or AnalysisSettings()
    period_days = period_days or DEFAULT_PERIOD_DAYS

    if cache is None:
        return derive_analysis(rows, settings, period_days)

    key = fingerprint(rows, settings=settings.model_dump(mode='json'), period_days=period_days)
    cached = cache.get(CACHE_CATEGORY, key)
    if cached is not None:
        logger.info("Analysis cache hit for %d rows", len(rows))
        return cached

    logger.info("Analyzing %d search term rows over %d days", len(rows), period_days)
    analysis = derive_analysis(rows, settings, period_days)
    cache.set(CACHE_CATEGORY, key, analysis)
    return analysis
