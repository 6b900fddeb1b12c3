"""
Data models for N-gram Insights.
Record types for raw search term rows and the derived n-gram, wasteful term
and KPI views. Field names are snake_case in Python and camelCase on the wire.
"""

import math
import re
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


_NUMERIC_NOISE = re.compile(r'[$€£,%\s]')


def coerce_metric(value: Any) -> float:
    """
    Coerce a raw metric value to a non-negative float.

    None, NaN, infinities, blanks and unparsable strings become 0.
    Negative values are clamped to 0.

    Args:
        value: Raw value from a report cell or JSON payload

    Returns:
        Cleaned float
    """
    if value is None:
        return 0.0

    if isinstance(value, str):
        value = _NUMERIC_NOISE.sub('', value)
        if not value:
            return 0.0

    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0

    if math.isnan(number) or math.isinf(number):
        return 0.0

    return max(number, 0.0)


class GramType(str, Enum):
    """Classification label for an n-gram or search term."""

    BRAND = 'Brand'
    NON_BRAND = 'Non-brand'
    DIMENSION = 'Dimension'


class Confidence(str, Enum):
    """How safe it is to add a term as a negative keyword."""

    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'


class NegativeScope(str, Enum):
    """Level at which a negative keyword should be added."""

    ACCOUNT = 'Account'
    CAMPAIGN = 'Campaign'


class BaseRecord(BaseModel):
    """Shared model configuration: camelCase aliases, population by name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        """Dump to a JSON-safe dict using camelCase keys."""
        return self.model_dump(by_alias=True, mode='json')


class SearchTermRow(BaseRecord):
    """One row of a search term report (search term x campaign x segment)."""

    search_term: str = ''
    campaign_id: str = ''
    campaign_name: str = ''
    impressions: int = 0
    clicks: int = 0
    cost: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0
    device: Optional[str] = None

    @field_validator('search_term', 'campaign_id', 'campaign_name', mode='before')
    @classmethod
    def clean_text(cls, v: Any) -> str:
        if v is None:
            return ''
        if isinstance(v, float):
            if math.isnan(v):
                return ''
            # Spreadsheet readers load numeric IDs as floats
            if v.is_integer():
                return str(int(v))
        return str(v)

    @field_validator('device', mode='before')
    @classmethod
    def clean_device(cls, v: Any) -> Optional[str]:
        if v is None or (isinstance(v, float) and math.isnan(v)):
            return None
        v = str(v).strip()
        return v.upper() or None

    @field_validator('impressions', 'clicks', mode='before')
    @classmethod
    def clean_count(cls, v: Any) -> int:
        return int(coerce_metric(v))

    @field_validator('cost', 'conversions', 'conversion_value', mode='before')
    @classmethod
    def clean_amount(cls, v: Any) -> float:
        return coerce_metric(v)


class NGram(BaseRecord):
    """Aggregated performance of one contiguous token sequence."""

    gram: str
    n: int
    term_count: int = 0
    impressions: int = 0
    clicks: int = 0
    cost: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0
    roas: Optional[float] = None
    cpa: Optional[float] = None
    ctr: float = 0.0
    cpc: float = 0.0
    conversion_rate: float = 0.0
    gram_type: GramType = GramType.NON_BRAND


class WastefulTerm(BaseRecord):
    """An exact search term aggregated across campaigns for negative mining."""

    search_term: str
    impressions: int = 0
    clicks: int = 0
    cost: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0
    cpc: float = 0.0
    ctr: float = 0.0
    campaigns: List[str] = Field(default_factory=list)
    campaign_ids: List[str] = Field(default_factory=list)
    monthly_cost: float = 0.0
    confidence: Confidence = Confidence.LOW

    @computed_field
    @property
    def scope(self) -> NegativeScope:
        """Account-level when the term wastes spend in two or more campaigns."""
        if len(self.campaigns) >= 2:
            return NegativeScope.ACCOUNT
        return NegativeScope.CAMPAIGN


class NGramKPIs(BaseRecord):
    """Headline statistics over the classified n-gram set."""

    top_pattern: Optional[NGram] = None
    brand_spend: float = 0.0
    non_brand_spend: float = 0.0
    brand_spend_pct: int = 0
    avg_roas: Optional[float] = None
    opportunity: Optional[NGram] = None


class NGramSummary(BaseRecord):
    """Counts of the n-gram table by size."""

    search_term_count: int = 0
    unigram_count: int = 0
    bigram_count: int = 0
    trigram_count: int = 0


class WasteSummary(BaseRecord):
    """Totals over the wasteful term set and an optional selection of it."""

    term_count: int = 0
    total_wasted_cost: float = 0.0
    monthly_waste: float = 0.0
    account_level_count: int = 0
    campaign_level_count: int = 0
    confidence_counts: Dict[str, int] = Field(default_factory=dict)
    selected_count: int = 0
    selected_cost: float = 0.0
    selected_monthly_savings: float = 0.0


class NGramAnalysis(BaseRecord):
    """The full derived view over one set of search term rows."""

    ngrams: List[NGram] = Field(default_factory=list)
    kpis: NGramKPIs = Field(default_factory=NGramKPIs)
    ngram_summary: NGramSummary = Field(default_factory=NGramSummary)
    wasteful_terms: List[WastefulTerm] = Field(default_factory=list)
    waste_summary: WasteSummary = Field(default_factory=WasteSummary)
    negative_candidates: List[NGram] = Field(default_factory=list)
    expansion_candidates: List[NGram] = Field(default_factory=list)
    top_winning: List[NGram] = Field(default_factory=list)
    top_wasteful: List[NGram] = Field(default_factory=list)
    period_days: int = 30
    avg_cpa: float = 0.0
    avg_ctr: float = 0.0
