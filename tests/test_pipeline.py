"""Tests for the end-to-end analysis pipeline."""

from conftest import make_row
from ngram_insights.cache import AnalysisCache
from ngram_insights.config import AnalysisSettings
from ngram_insights.models import GramType
from ngram_insights.pipeline import CACHE_CATEGORY, analyze_search_terms


class TestAnalyzeSearchTerms:
    def test_full_analysis(self, mixed_rows):
        settings = AnalysisSettings(brand_terms=["acme"])
        analysis = analyze_search_terms(mixed_rows, settings, period_days=30)

        grams = {g.gram: g for g in analysis.ngrams}
        assert grams["acme"].gram_type == GramType.BRAND
        assert analysis.kpis.brand_spend > 0
        assert 0 <= analysis.kpis.brand_spend_pct <= 100
        assert analysis.kpis.top_pattern is not None
        assert [t.search_term for t in analysis.wasteful_terms][0] == "free sofa"
        assert analysis.waste_summary.term_count == len(analysis.wasteful_terms)
        assert analysis.ngram_summary.search_term_count == 8
        assert all(g.gram_type != GramType.BRAND for g in analysis.negative_candidates)
        assert analysis.period_days == 30

    def test_empty_rows(self):
        analysis = analyze_search_terms([])

        assert analysis.ngrams == []
        assert analysis.kpis.top_pattern is None
        assert analysis.kpis.avg_roas is None
        assert analysis.kpis.opportunity is None
        assert analysis.kpis.brand_spend_pct == 0
        assert analysis.wasteful_terms == []
        assert analysis.period_days == 30

    def test_settings_flow_through(self, sofa_rows):
        narrow = analyze_search_terms(sofa_rows, AnalysisSettings(max_n=1, min_support=1))
        assert {g.n for g in narrow.ngrams} == {1}

    def test_cache_hit_returns_stored_result(self, sofa_rows, fake_clock):
        cache = AnalysisCache(clock=fake_clock)
        first = analyze_search_terms(sofa_rows, cache=cache)
        second = analyze_search_terms(list(sofa_rows), cache=cache)

        assert second is first
        assert cache.size(CACHE_CATEGORY) == 1

    def test_cache_keyed_on_settings_and_period(self, sofa_rows, fake_clock):
        cache = AnalysisCache(clock=fake_clock)
        base = analyze_search_terms(sofa_rows, cache=cache)

        assert analyze_search_terms(sofa_rows, AnalysisSettings(min_cost=5), cache=cache) is not base
        assert analyze_search_terms(sofa_rows, period_days=7, cache=cache) is not base
        assert cache.size(CACHE_CATEGORY) == 3

    def test_cache_expiry_recomputes(self, sofa_rows, fake_clock):
        cache = AnalysisCache(ttls={CACHE_CATEGORY: 60}, clock=fake_clock)
        first = analyze_search_terms(sofa_rows, cache=cache)

        fake_clock.advance(60)
        assert analyze_search_terms(sofa_rows, cache=cache) is not first

    def test_eviction_recomputes(self, sofa_rows):
        cache = AnalysisCache()
        first = analyze_search_terms(sofa_rows, cache=cache)

        assert cache.evict(CACHE_CATEGORY) == 1
        assert analyze_search_terms(sofa_rows, cache=cache) is not first

    def test_expired_results_do_not_accumulate(self, fake_clock):
        cache = AnalysisCache(ttls={CACHE_CATEGORY: 300}, clock=fake_clock)
        for i in range(50):
            analyze_search_terms([make_row(f"sofa {i}", cost=1)], cache=cache)
            fake_clock.advance(10_000)

        assert cache.size(CACHE_CATEGORY) <= 1
