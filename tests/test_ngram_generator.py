"""Tests for n-gram extraction and aggregation."""

import pytest

from conftest import make_row
from ngram_insights.models import GramType
from ngram_insights.ngram_generator import (build_ngrams, clean_search_term, extract_ngrams,
                                            filter_by_size, get_ngram_summary, strip_markers,
                                            tokenize)


def _by_key(ngrams):
    return {(g.gram, g.n): g for g in ngrams}


class TestCleaning:
    def test_lowercases_and_collapses_whitespace(self):
        assert clean_search_term("  Corner   SOFA ") == "corner sofa"

    def test_strips_source_markers(self):
        assert clean_search_term("[PMax Insight] Corner Sofa") == "corner sofa"
        assert strip_markers("[PMax Insight] Corner Sofa") == "Corner Sofa"

    def test_non_string_becomes_empty(self):
        assert clean_search_term(None) == ""
        assert clean_search_term(float("nan")) == ""

    def test_tokenize_empty(self):
        assert tokenize("") == []


class TestExtractNgrams:
    @pytest.mark.parametrize("k", [0, 1, 2, 3, 5])
    def test_window_counts(self, k):
        words = [f"w{i}" for i in range(k)]
        assert len(extract_ngrams(words, 1)) == k
        assert len(extract_ngrams(words, 2)) == max(k - 1, 0)
        assert len(extract_ngrams(words, 3)) == max(k - 2, 0)

    def test_contiguous_windows(self):
        assert extract_ngrams(["modern", "corner", "sofa"], 2) == ["modern corner", "corner sofa"]


class TestBuildNgrams:
    def test_shared_bigram(self, sofa_rows):
        grams = _by_key(build_ngrams(sofa_rows, max_n=3, min_support=2))

        corner_sofa = grams[("corner sofa", 2)]
        assert corner_sofa.term_count == 2
        assert corner_sofa.cost == 70
        assert corner_sofa.conversions == 0
        assert corner_sofa.roas == 0.0
        assert corner_sofa.cpa is None
        assert corner_sofa.gram_type == GramType.NON_BRAND

    def test_support_filter(self, sofa_rows):
        ngrams = build_ngrams(sofa_rows, max_n=3, min_support=2)
        assert ngrams
        assert all(g.term_count >= 2 for g in ngrams)
        assert ("modern", 1) not in _by_key(ngrams)

    def test_min_support_one_keeps_every_window(self):
        rows = [make_row("modern corner sofa", cost=10)]
        ngrams = build_ngrams(rows, max_n=3, min_support=1)
        assert len(filter_by_size(ngrams, 1)) == 3
        assert len(filter_by_size(ngrams, 2)) == 2
        assert len(filter_by_size(ngrams, 3)) == 1

    def test_empty_input(self):
        assert build_ngrams([], 3, 2) == []

    def test_blank_terms_contribute_nothing(self):
        rows = [make_row("", cost=5), make_row("   ", cost=5)]
        assert build_ngrams(rows, min_support=1) == []

    def test_same_term_across_campaigns_counts_once(self):
        rows = [
            make_row("corner sofa", cost=10, campaign_id="1"),
            make_row("Corner Sofa", cost=15, campaign_id="2"),
        ]
        grams = _by_key(build_ngrams(rows, min_support=1))

        assert grams[("corner sofa", 2)].term_count == 1
        assert grams[("corner sofa", 2)].cost == 25
        assert build_ngrams(rows, min_support=2) == []

    def test_repeated_word_sums_per_occurrence(self):
        rows = [make_row("sofa sofa", cost=10, clicks=2)]
        sofa = _by_key(build_ngrams(rows, min_support=1))[("sofa", 1)]

        assert sofa.term_count == 1
        assert sofa.cost == 20
        assert sofa.clicks == 4

    def test_marker_rows_merge_with_plain_rows(self):
        rows = [
            make_row("[PMax Insight] corner sofa", cost=10),
            make_row("corner sofa bed", cost=5),
        ]
        grams = _by_key(build_ngrams(rows, min_support=2))
        assert grams[("corner sofa", 2)].cost == 15
        assert not any("pmax" in g for g, _ in grams)

    def test_derived_ratios(self):
        rows = [
            make_row("corner sofa", cost=50, clicks=10, impressions=100,
                     conversions=2, conversion_value=200),
            make_row("corner sofa bed", cost=50, clicks=10, impressions=100),
        ]
        sofa = _by_key(build_ngrams(rows))[("corner sofa", 2)]

        assert sofa.roas == 200 / 100
        assert sofa.cpa == 50.0
        assert sofa.ctr == 0.1
        assert sofa.cpc == 5.0
        assert sofa.conversion_rate == 0.1

    def test_sorted_by_cost(self, mixed_rows):
        ngrams = build_ngrams(mixed_rows)
        costs = [g.cost for g in ngrams]
        assert costs == sorted(costs, reverse=True)

    def test_brand_classification(self, mixed_rows):
        grams = _by_key(build_ngrams(mixed_rows, brand_terms=["acme"]))
        assert grams[("acme", 1)].gram_type == GramType.BRAND
        assert grams[("120x200", 1)].gram_type == GramType.DIMENSION


class TestSummary:
    def test_counts(self, sofa_rows):
        ngrams = build_ngrams(sofa_rows)
        summary = get_ngram_summary(ngrams, sofa_rows)

        assert summary.search_term_count == 2
        assert summary.unigram_count == 2  # corner, sofa
        assert summary.bigram_count == 1
        assert summary.trigram_count == 0
