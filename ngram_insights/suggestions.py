"""
Negative Keyword Suggestions for N-gram Insights
Mines zero-conversion search terms for negative keyword candidates, scores
each with a confidence tier, and picks negative / expansion candidates from
the n-gram table.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .classifier import contains_brand, normalize_brand_terms
from .metrics import calculate_cpc, calculate_ctr, project_monthly
from .models import (Confidence, GramType, NegativeScope, NGram, SearchTermRow,
                     WastefulTerm, WasteSummary)
from .ngram_generator import clean_search_term, strip_markers

logger = logging.getLogger(__name__)


# Default thresholds for negative keyword mining
DEFAULT_THRESHOLDS = {
    'min_cost': 1.0,              # Minimum spend before a term is listed
    'min_clicks': 3,              # Minimum clicks before a term is listed
    'default_cpa': 50.0,          # Used when nothing in the dataset converts
    'high_ctr_multiplier': 1.2,   # CTR above avg * this counts as high
    'short_period_days': 14,      # Periods shorter than this are short
    'high_volume_clicks': 20,     # Clicks at or above this are high volume
    'medium_min_clicks': 5,       # Below-CPA terms need this many clicks for medium
}


def _aggregate_terms(rows: Iterable[SearchTermRow]) -> Dict[str, dict]:
    """Group rows by normalized exact search term."""
    by_term = {}

    for row in rows:
        key = clean_search_term(row.search_term)
        if not key:
            continue

        bucket = by_term.get(key)
        if bucket is None:
            bucket = by_term[key] = {
                'search_term': strip_markers(row.search_term),
                'impressions': 0, 'clicks': 0, 'cost': 0.0,
                'conversions': 0.0, 'conversion_value': 0.0,
                'campaigns': {}, 'campaign_ids': {},
            }

        bucket['impressions'] += row.impressions
        bucket['clicks'] += row.clicks
        bucket['cost'] += row.cost
        bucket['conversions'] += row.conversions
        bucket['conversion_value'] += row.conversion_value
        # dicts as ordered sets
        if row.campaign_name:
            bucket['campaigns'][row.campaign_name] = None
        if row.campaign_id:
            bucket['campaign_ids'][row.campaign_id] = None

    return by_term


def compute_baselines(rows: Iterable[SearchTermRow],
                      default_cpa: float = DEFAULT_THRESHOLDS['default_cpa']) -> Tuple[float, float]:
    """
    Compute the account baselines used for confidence scoring.

    Args:
        rows: Search term rows
        default_cpa: CPA to use when no term converts

    Returns:
        Tuple of (average CPA over converting terms, average CTR over all terms)
    """
    terms = _aggregate_terms(rows).values()

    converting = [t for t in terms if t['conversions'] > 0]
    conv_cost = sum(t['cost'] for t in converting)
    conv_total = sum(t['conversions'] for t in converting)
    avg_cpa = conv_cost / conv_total if conv_total > 0 else default_cpa

    clicks = sum(t['clicks'] for t in terms)
    impressions = sum(t['impressions'] for t in terms)

    return avg_cpa, calculate_ctr(clicks, impressions)


def score_confidence(cost: float, clicks: float, ctr: float, conversions: float,
                     avg_cpa: float, avg_ctr: float, period_days: int,
                     thresholds: dict = None) -> Confidence:
    """
    Score how safe it is to add a search term as a negative keyword.

    High-CTR terms are downgraded: above-average click-through marks a term
    as relevant even before it converts, and over short periods conversion
    lag can explain the missing conversions.

    Args:
        cost: Term cost over the period
        clicks: Term clicks
        ctr: Term CTR (fraction)
        conversions: Term conversions
        avg_cpa: Account average CPA
        avg_ctr: Account average CTR (fraction)
        period_days: Length of the reporting period
        thresholds: Custom threshold values

    Returns:
        Confidence tier
    """
    thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}

    is_high_ctr = ctr > avg_ctr * thresholds['high_ctr_multiplier']
    is_short_period = period_days < thresholds['short_period_days']
    is_high_volume = clicks >= thresholds['high_volume_clicks']

    if conversions > 0:
        return Confidence.LOW
    if is_high_ctr and is_short_period:
        return Confidence.LOW
    if is_high_ctr and is_high_volume:
        return Confidence.LOW
    if cost >= avg_cpa * 2:
        return Confidence.HIGH
    if cost >= avg_cpa:
        return Confidence.LOW if is_high_ctr else Confidence.MEDIUM
    if clicks >= thresholds['medium_min_clicks']:
        return Confidence.MEDIUM
    return Confidence.LOW


def compute_wasteful_terms(rows: Iterable[SearchTermRow],
                           min_cost: float = DEFAULT_THRESHOLDS['min_cost'],
                           min_clicks: int = DEFAULT_THRESHOLDS['min_clicks'],
                           period_days: int = 30,
                           avg_cpa: Optional[float] = None,
                           avg_ctr: Optional[float] = None,
                           include_converting: bool = False,
                           brand_terms: Iterable[str] = (),
                           thresholds: dict = None) -> List[WastefulTerm]:
    """
    Aggregate rows by exact search term and score negative keyword candidates.

    Brand terms are always excluded. Terms below min_cost or min_clicks are
    dropped, and so are converting terms unless include_converting is set.

    Args:
        rows: Search term rows, already filtered by the caller
        min_cost: Minimum term cost
        min_clicks: Minimum term clicks
        period_days: Length of the reporting period, for the monthly projection
        avg_cpa: Account average CPA (computed from rows when None)
        avg_ctr: Account average CTR (computed from rows when None)
        include_converting: Keep terms that have conversions
        brand_terms: Brand vocabulary to protect
        thresholds: Custom scoring thresholds

    Returns:
        Wasteful terms sorted by cost, highest first
    """
    rows = list(rows)
    thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}
    brands = normalize_brand_terms(brand_terms)

    if avg_cpa is None or avg_ctr is None:
        base_cpa, base_ctr = compute_baselines(rows, thresholds['default_cpa'])
        avg_cpa = base_cpa if avg_cpa is None else avg_cpa
        avg_ctr = base_ctr if avg_ctr is None else avg_ctr

    result = []
    brand_skipped = 0

    for key, term in _aggregate_terms(rows).items():
        if contains_brand(key, brands):
            brand_skipped += 1
            continue

        if term['cost'] < min_cost or term['clicks'] < min_clicks:
            continue

        if term['conversions'] > 0 and not include_converting:
            continue

        ctr = calculate_ctr(term['clicks'], term['impressions'])

        result.append(WastefulTerm(
            search_term=term['search_term'],
            impressions=term['impressions'],
            clicks=term['clicks'],
            cost=term['cost'],
            conversions=term['conversions'],
            conversion_value=term['conversion_value'],
            cpc=calculate_cpc(term['cost'], term['clicks']),
            ctr=ctr,
            campaigns=list(term['campaigns']),
            campaign_ids=list(term['campaign_ids']),
            monthly_cost=project_monthly(term['cost'], period_days),
            confidence=score_confidence(term['cost'], term['clicks'], ctr,
                                        term['conversions'], avg_cpa, avg_ctr,
                                        period_days, thresholds),
        ))

    result.sort(key=lambda t: t.cost, reverse=True)

    logger.debug("Found %d wasteful terms (%d brand terms protected), avg CPA %.2f, avg CTR %.4f",
                 len(result), brand_skipped, avg_cpa, avg_ctr)

    return result


def split_by_scope(terms: List[WastefulTerm]) -> Tuple[List[WastefulTerm], List[WastefulTerm]]:
    """
    Split wasteful terms into account-level and campaign-level negatives.

    Returns:
        Tuple of (terms in 2+ campaigns, terms in a single campaign)
    """
    account_level = [t for t in terms if t.scope == NegativeScope.ACCOUNT]
    campaign_level = [t for t in terms if t.scope == NegativeScope.CAMPAIGN]
    return account_level, campaign_level


def select_terms(terms: List[WastefulTerm], selected: Iterable[str]) -> List[WastefulTerm]:
    """Pick the wasteful terms whose normalized text is in selected."""
    keys = {clean_search_term(s) for s in selected or ()}
    return [t for t in terms if clean_search_term(t.search_term) in keys]


def summarize_waste(terms: List[WastefulTerm], selected: Iterable[str] = None) -> WasteSummary:
    """
    Get a summary of the wasteful term set.

    Args:
        terms: Wasteful terms
        selected: Search terms picked for negation, if any

    Returns:
        WasteSummary with totals, scope counts and savings of the selection
    """
    account_level, campaign_level = split_by_scope(terms)
    picked = select_terms(terms, selected) if selected else []

    confidence_counts = {c.value: 0 for c in Confidence}
    for term in terms:
        confidence_counts[term.confidence.value] += 1

    return WasteSummary(
        term_count=len(terms),
        total_wasted_cost=sum(t.cost for t in terms),
        monthly_waste=sum(t.monthly_cost for t in terms),
        account_level_count=len(account_level),
        campaign_level_count=len(campaign_level),
        confidence_counts=confidence_counts,
        selected_count=len(picked),
        selected_cost=sum(t.cost for t in picked),
        selected_monthly_savings=sum(t.monthly_cost for t in picked),
    )


def find_negative_candidates(ngrams: List[NGram], min_cost: float = 1.0,
                             min_terms: int = 2) -> List[NGram]:
    """
    Pick n-grams with spend but no conversions as negative candidates.
    Brand grams are never suggested.

    Returns:
        Candidates, highest cost first
    """
    candidates = [
        g for g in ngrams
        if g.conversions == 0
        and g.cost >= min_cost
        and g.term_count >= min_terms
        and g.gram_type != GramType.BRAND
    ]
    return sorted(candidates, key=lambda g: g.cost, reverse=True)


def find_expansion_candidates(ngrams: List[NGram], min_terms: int = 2,
                              min_roas: float = 2.0) -> List[NGram]:
    """
    Pick converting n-grams with strong ROAS as keyword expansion candidates.

    Returns:
        Candidates, highest ROAS first
    """
    candidates = [
        g for g in ngrams
        if g.conversions > 0
        and g.term_count >= min_terms
        and (g.roas or 0) > min_roas
    ]
    return sorted(candidates, key=lambda g: g.roas or 0, reverse=True)


def top_winning(ngrams: List[NGram], limit: int = 30) -> List[NGram]:
    """Converting n-grams, most conversions first."""
    winning = [g for g in ngrams if g.conversions > 0]
    return sorted(winning, key=lambda g: g.conversions, reverse=True)[:limit]


def top_wasteful(ngrams: List[NGram], min_cost: float = 2.0, limit: int = 30) -> List[NGram]:
    """Non-converting n-grams above min_cost, highest cost first."""
    wasteful = [g for g in ngrams if g.conversions == 0 and g.cost > min_cost]
    return sorted(wasteful, key=lambda g: g.cost, reverse=True)[:limit]
