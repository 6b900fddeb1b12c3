"""
Text exports for N-gram Insights: the negative keyword CSV, the plain list
for clipboard copy, and the n-gram block injected into AI report prompts.
"""

from typing import List

import pandas as pd

from .models import NGram, NGramAnalysis, WastefulTerm


NEGATIVE_CSV_COLUMNS = ['Search Term', 'Cost', 'Monthly Cost Est.', 'Clicks', 'Impressions',
                        'Campaigns', 'Scope', 'Confidence']


def negatives_to_dataframe(terms: List[WastefulTerm]) -> pd.DataFrame:
    """Tabulate wasteful terms with the export column names."""
    records = [{
        'Search Term': t.search_term,
        'Cost': round(t.cost, 2),
        'Monthly Cost Est.': round(t.monthly_cost, 2),
        'Clicks': t.clicks,
        'Impressions': t.impressions,
        'Campaigns': '; '.join(t.campaigns),
        'Scope': t.scope.value,
        'Confidence': t.confidence.value,
    } for t in terms]
    return pd.DataFrame(records, columns=NEGATIVE_CSV_COLUMNS)


def negatives_to_csv(terms: List[WastefulTerm]) -> str:
    """Render wasteful terms as CSV text."""
    return negatives_to_dataframe(terms).to_csv(index=False, float_format='%.2f')


def negatives_to_text(terms: List[WastefulTerm]) -> str:
    """One search term per line, ready to paste into a negative keyword list."""
    return '\n'.join(t.search_term for t in terms)


def _roas(gram: NGram) -> str:
    return f"{gram.roas:.1f}x" if gram.roas is not None else 'N/A'


def format_ngrams_for_prompt(analysis: NGramAnalysis, top_n: int = 20,
                             currency: str = '€') -> str:
    """
    Format the n-gram analysis as a text block for an AI report prompt.

    Args:
        analysis: Full analysis result
        top_n: Number of 1-word patterns to list
        currency: Currency symbol

    Returns:
        Markdown text; empty string when there are no n-grams
    """
    if not analysis.ngrams:
        return ''

    lines = ['', '=== N-GRAM ANALYSIS ===']

    one_grams = [g for g in analysis.ngrams if g.n == 1][:top_n]
    if one_grams:
        lines += ['', '--- Top 1-Word Patterns (by spend) ---',
                  '| Word | Type | Terms | Impressions | Clicks | Cost | Conv | ROAS |',
                  '|------|------|-------|-------------|--------|------|------|------|']
        lines += [
            f"| {g.gram} | {g.gram_type.value} | {g.term_count} | {g.impressions} | {g.clicks} | "
            f"{currency}{g.cost:.2f} | {g.conversions:g} | {_roas(g)} |"
            for g in one_grams
        ]

    two_grams = [g for g in analysis.ngrams if g.n == 2][:15]
    if two_grams:
        lines += ['', '--- Top 2-Word Patterns (by spend) ---',
                  '| Phrase | Type | Terms | Clicks | Cost | Conv | ROAS |',
                  '|--------|------|-------|--------|------|------|------|']
        lines += [
            f"| {g.gram} | {g.gram_type.value} | {g.term_count} | {g.clicks} | "
            f"{currency}{g.cost:.2f} | {g.conversions:g} | {_roas(g)} |"
            for g in two_grams
        ]

    negatives = analysis.negative_candidates
    if negatives:
        lines += ['', '--- NEGATIVE KEYWORD CANDIDATES (0 conversions) ---',
                  '| Word/Phrase | Terms | Clicks | Wasted Cost | Action |',
                  '|------------|-------|--------|-------------|--------|']
        lines += [
            f"| {g.gram} | {g.term_count} | {g.clicks} | {currency}{g.cost:.2f} | ADD AS NEGATIVE |"
            for g in negatives[:15]
        ]
        total_waste = sum(g.cost for g in negatives)
        lines += ['', f"Total potential savings from negatives: {currency}{total_waste:.2f}/period"]

    expansions = analysis.expansion_candidates
    if expansions:
        lines += ['', '--- EXPANSION CANDIDATES (converting patterns not yet targeted) ---']
        lines += [
            f'- "{g.gram}": {g.conversions:g} conv, ROAS {_roas(g)}, in {g.term_count} terms'
            for g in expansions[:10]
        ]

    kpis = analysis.kpis
    avg_roas = f"{kpis.avg_roas:.2f}x" if kpis.avg_roas is not None else "no data"
    lines += ['', '--- KPIs ---',
              f"Top pattern: {kpis.top_pattern.gram if kpis.top_pattern else 'no data'}",
              f"Best opportunity: {kpis.opportunity.gram if kpis.opportunity else 'no data'}",
              f"Average ROAS: {avg_roas}",
              f"Brand share of spend: {kpis.brand_spend_pct}%"]

    return '\n'.join(lines) + '\n'
