"""
Analysis settings for N-gram Insights.
Defaults, environment variables and per-request overrides.
"""

import os
from typing import Any, Dict, Mapping, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from .classifier import normalize_brand_terms
from .exceptions import ConfigurationError


# Environment variable -> setting name
ENV_VARS = {
    'NGRAM_MAX_N': 'max_n',
    'NGRAM_MIN_SUPPORT': 'min_support',
    'NGRAM_MIN_COST': 'min_cost',
    'NGRAM_MIN_CLICKS': 'min_clicks',
    'NGRAM_DEFAULT_CPA': 'default_cpa',
    'NGRAM_INCLUDE_CONVERTING': 'include_converting',
    'NGRAM_BRAND_TERMS': 'brand_terms',
}

# Request/form field -> setting name
OVERRIDE_FIELDS = {
    'max_n': 'max_n', 'maxN': 'max_n',
    'min_support': 'min_support', 'minSupport': 'min_support',
    'min_cost': 'min_cost', 'minCost': 'min_cost',
    'min_clicks': 'min_clicks', 'minClicks': 'min_clicks',
    'default_cpa': 'default_cpa', 'defaultCpa': 'default_cpa',
    'include_converting': 'include_converting', 'includeConverting': 'include_converting',
    'brand_terms': 'brand_terms', 'brandTerms': 'brand_terms',
}


class AnalysisSettings(BaseModel):
    """Thresholds and vocabulary for one analysis run."""

    max_n: int = Field(default=3, ge=1, le=3)
    min_support: int = Field(default=2, ge=1)
    min_cost: float = Field(default=1.0, ge=0)
    min_clicks: int = Field(default=3, ge=0)
    include_converting: bool = False
    default_cpa: float = Field(default=50.0, gt=0)
    brand_terms: Tuple[str, ...] = ()
    cache_ttls: Dict[str, float] = Field(default_factory=lambda: {'analysis': 300})

    @field_validator('brand_terms', mode='before')
    @classmethod
    def clean_brand_terms(cls, v: Any) -> Tuple[str, ...]:
        return normalize_brand_terms(v)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'AnalysisSettings':
        """Build settings from NGRAM_* environment variables."""
        environ = os.environ if environ is None else environ
        values = {
            name: environ[var]
            for var, name in ENV_VARS.items()
            if environ.get(var, '').strip()
        }
        return cls._build(values)

    def with_overrides(self, overrides: Mapping[str, Any] = None) -> 'AnalysisSettings':
        """
        Return a copy with request/form values applied. Blank values are ignored.

        Raises:
            ConfigurationError: If an override has an invalid value
        """
        values = self.model_dump()
        for field, value in (overrides or {}).items():
            name = OVERRIDE_FIELDS.get(field)
            if name is None or value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            values[name] = value
        return self._build(values)

    @classmethod
    def _build(cls, values: Dict[str, Any]) -> 'AnalysisSettings':
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid analysis settings: {e}") from e
