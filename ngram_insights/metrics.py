"""
Metrics Calculation Utility for N-gram Insights
Guarded ratios (CTR, CPC, CVR, ROAS, CPA), reporting period length and the
headline KPIs derived from a classified n-gram table.
"""

import math
from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from .models import GramType, NGram, NGramKPIs, SearchTermRow


DAYS_PER_MONTH = 30


def calculate_ctr(clicks: float, impressions: float) -> float:
    """
    Calculate Click-Through Rate (CTR) as a fraction.

    CTR = Clicks / Impressions

    Returns:
        CTR, or 0 if impressions is 0
    """
    if impressions <= 0:
        return 0.0
    return clicks / impressions


def calculate_cpc(cost: float, clicks: float) -> float:
    """
    Calculate Cost Per Click (CPC).

    Returns:
        CPC, or 0 if clicks is 0
    """
    if clicks <= 0:
        return 0.0
    return cost / clicks


def calculate_cvr(conversions: float, clicks: float) -> float:
    """
    Calculate Conversion Rate (CVR) as a fraction.

    Returns:
        CVR, or 0 if clicks is 0
    """
    if clicks <= 0:
        return 0.0
    return conversions / clicks


def calculate_roas(conversion_value: float, cost: float) -> Optional[float]:
    """
    Calculate Return on Ad Spend (ROAS).

    ROAS = Conversion Value / Cost

    Returns:
        ROAS, or None if cost is 0
    """
    if cost <= 0:
        return None
    return conversion_value / cost


def calculate_cpa(cost: float, conversions: float) -> Optional[float]:
    """
    Calculate Cost Per Acquisition (CPA).

    Returns:
        CPA, or None if there are no conversions
    """
    if conversions <= 0:
        return None
    return cost / conversions


def calculate_share(part: float, total: float) -> int:
    """Percentage of total, rounded half up to an integer in [0, 100]."""
    if total <= 0:
        return 0
    pct = math.floor(part / total * 100 + 0.5)
    return int(min(max(pct, 0), 100))


def _to_date(value: Union[str, date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def period_days(start: Union[str, date, datetime], end: Union[str, date, datetime]) -> int:
    """
    Inclusive number of days in a reporting period.

    Args:
        start: First day (date or ISO string)
        end: Last day (date or ISO string)

    Returns:
        Day count, at least 1
    """
    days = (_to_date(end) - _to_date(start)).days + 1
    return max(days, 1)


def project_monthly(cost: float, days: int) -> float:
    """Linear projection of period cost to a 30-day month."""
    if days <= 0:
        return 0.0
    return cost / days * DAYS_PER_MONTH


def compute_kpis(ngrams: Iterable[NGram]) -> NGramKPIs:
    """
    Derive the headline KPIs from a classified n-gram table.

    - top pattern: most conversions among converting grams
    - brand split: Brand vs Non-brand spend (Dimension spend excluded)
    - average ROAS: mean over converting grams with a ROAS
    - opportunity: best ROAS among converting, non-Dimension grams of 2+ words

    Args:
        ngrams: Output of build_ngrams

    Returns:
        NGramKPIs; optional fields are None when there is no data
    """
    ngrams = list(ngrams)
    converting = [g for g in ngrams if g.conversions > 0]

    top_pattern = max(converting, key=lambda g: g.conversions) if converting else None

    brand_spend = sum(g.cost for g in ngrams if g.gram_type == GramType.BRAND)
    non_brand_spend = sum(g.cost for g in ngrams if g.gram_type == GramType.NON_BRAND)

    roas_values = [g.roas for g in converting if g.roas is not None]
    avg_roas = sum(roas_values) / len(roas_values) if roas_values else None

    candidates = [
        g for g in converting
        if g.gram_type != GramType.DIMENSION and g.n >= 2
    ]
    opportunity = max(candidates, key=lambda g: g.roas or 0) if candidates else None

    return NGramKPIs(
        top_pattern=top_pattern,
        brand_spend=brand_spend,
        non_brand_spend=non_brand_spend,
        brand_spend_pct=calculate_share(brand_spend, brand_spend + non_brand_spend),
        avg_roas=avg_roas,
        opportunity=opportunity,
    )


def get_totals(rows: List[SearchTermRow]) -> dict:
    """
    Calculate total metrics over raw rows.

    Args:
        rows: Search term rows

    Returns:
        Dictionary with totals and overall rates
    """
    impressions = sum(r.impressions for r in rows)
    clicks = sum(r.clicks for r in rows)
    cost = sum(r.cost for r in rows)
    conversions = sum(r.conversions for r in rows)
    conversion_value = sum(r.conversion_value for r in rows)

    return {
        'total_impressions': impressions,
        'total_clicks': clicks,
        'total_cost': round(cost, 2),
        'total_conversions': round(conversions, 2),
        'total_conversion_value': round(conversion_value, 2),
        'overall_ctr': calculate_ctr(clicks, impressions),
        'overall_cpc': calculate_cpc(cost, clicks),
        'overall_roas': calculate_roas(conversion_value, cost),
        'overall_cpa': calculate_cpa(cost, conversions),
    }
