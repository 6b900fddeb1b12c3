"""
Excel Writer Utility for N-gram Insights
Generates a multi-sheet Excel workbook: summary KPIs, the n-gram table with
unigram / bigram / trigram sections side by side, and negative keyword
candidates.
"""

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .models import Confidence, GramType, NGram, NGramAnalysis, WastefulTerm
from .ngram_generator import filter_by_size

logger = logging.getLogger(__name__)


# (attribute, header, width)
NGRAM_COLUMNS = [
    ('gram', 'N-gram', 24),
    ('gram_type', 'Type', 11),
    ('term_count', 'Terms', 8),
    ('impressions', 'Impr.', 10),
    ('clicks', 'Clicks', 9),
    ('cost', 'Cost', 11),
    ('conversions', 'Conv.', 9),
    ('conversion_value', 'Conv. value', 12),
    ('ctr', 'CTR', 9),
    ('cpa', 'CPA', 10),
    ('roas', 'ROAS', 9),
]

NEGATIVE_COLUMNS = [
    ('search_term', 'Search Term', 35),
    ('confidence', 'Confidence', 12),
    ('scope', 'Scope', 11),
    ('cost', 'Cost', 11),
    ('monthly_cost', 'Est. / Month', 13),
    ('clicks', 'Clicks', 9),
    ('impressions', 'Impr.', 10),
    ('ctr', 'CTR', 9),
    ('cpc', 'CPC', 9),
    ('campaigns', 'Campaigns', 40),
]

PERCENT_KEYS = {'ctr'}
CURRENCY_KEYS = {'cost', 'conversion_value', 'cpa', 'cpc', 'monthly_cost'}
COUNT_KEYS = {'impressions', 'clicks', 'term_count'}

# Colors
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
SECTION_FILLS = {
    1: PatternFill(start_color="70AD47", end_color="70AD47", fill_type="solid"),
    2: PatternFill(start_color="ED7D31", end_color="ED7D31", fill_type="solid"),
    3: PatternFill(start_color="5B9BD5", end_color="5B9BD5", fill_type="solid"),
}
NEGATIVE_HEADER_FILL = PatternFill(start_color="7030A0", end_color="7030A0", fill_type="solid")
CONFIDENCE_FILLS = {
    Confidence.HIGH: PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid"),
    Confidence.MEDIUM: PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid"),
}
BRAND_FONT = Font(color="1F4E79", bold=True)

THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)

SECTION_NAMES = {1: 'Unigrams', 2: 'Bigrams', 3: 'Trigrams'}

# Columns per n-gram section plus one gap column
SECTION_WIDTH = len(NGRAM_COLUMNS) + 1


def format_percentage(value: Optional[float]) -> str:
    """Format a fractional rate as a percentage."""
    if value is None:
        return ""
    return f"{value * 100:.2f}%"


def format_currency(value: Optional[float], symbol: str = '€') -> str:
    """Format a value as currency; None renders as a dash."""
    if value is None:
        return "-"
    return f"{symbol}{value:,.2f}"


def format_cell_value(key: str, value, currency: str = '€'):
    """Convert a model attribute into the value written to a cell."""
    if key in PERCENT_KEYS:
        return format_percentage(value)
    if key in CURRENCY_KEYS:
        return format_currency(value, currency)
    if key == 'roas':
        return f"{value:.2f}x" if value is not None else "-"
    if key in COUNT_KEYS:
        return int(value or 0)
    if key == 'conversions':
        return round(value or 0, 2)
    if key == 'campaigns':
        return '; '.join(value)
    if isinstance(value, Enum):
        return value.value
    return value


def write_header_row(ws, row: int, start_col: int, columns: list, fill: PatternFill) -> None:
    for col_idx, (_, col_name, col_width) in enumerate(columns):
        actual_col = start_col + col_idx
        cell = ws.cell(row=row, column=actual_col, value=col_name)
        cell.fill = fill
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal='center')
        cell.border = THIN_BORDER
        ws.column_dimensions[get_column_letter(actual_col)].width = col_width


def write_ngram_section_horizontal(ws, ngrams: List[NGram], start_row: int, start_col: int,
                                   section_name: str, header_fill: PatternFill,
                                   currency: str = '€') -> int:
    """
    Write an N-gram section at a specific column position (horizontal layout).

    Args:
        ws: Worksheet object
        ngrams: Grams of a single size
        start_row: Starting row number
        start_col: Starting column number
        section_name: Name of the section (e.g., "Unigrams")
        header_fill: Fill color for headers
        currency: Currency symbol

    Returns:
        Number of rows written, header rows included
    """
    current_row = start_row

    ws.cell(row=current_row, column=start_col, value=section_name).font = Font(bold=True, size=12)
    current_row += 2

    write_header_row(ws, current_row, start_col, NGRAM_COLUMNS, header_fill)
    current_row += 1

    for gram in ngrams:
        for col_idx, (col_key, _, _) in enumerate(NGRAM_COLUMNS):
            value = format_cell_value(col_key, getattr(gram, col_key), currency)
            cell = ws.cell(row=current_row, column=start_col + col_idx, value=value)
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal='left' if col_key == 'gram' else 'center')
            if col_key == 'gram' and gram.gram_type == GramType.BRAND:
                cell.font = BRAND_FONT
        current_row += 1

    return len(ngrams) + 3


def create_ngram_sheet(wb: Workbook, ngrams: List[NGram], max_n: int = 3,
                       currency: str = '€') -> None:
    """
    Create the n-gram worksheet with one section per window size, side by side.

    Args:
        wb: Workbook object
        ngrams: Full n-gram table
        max_n: Largest window size
        currency: Currency symbol
    """
    ws = wb.create_sheet(title="N-grams")

    cell = ws.cell(row=1, column=1, value="← Back to Summary")
    cell.font = Font(color="0563C1", underline="single")
    cell.hyperlink = "#'Summary'!A1"

    for n in range(1, max_n + 1):
        section = filter_by_size(ngrams, n)
        start_col = 1 + (n - 1) * SECTION_WIDTH
        fill = SECTION_FILLS.get(n, HEADER_FILL)
        write_ngram_section_horizontal(ws, section, 3, start_col,
                                       SECTION_NAMES.get(n, f"{n}-grams"), fill, currency)


def create_negative_sheet(wb: Workbook, terms: List[WastefulTerm], currency: str = '€') -> None:
    """
    Create the negative keyword worksheet, highlighted by confidence.

    Args:
        wb: Workbook object
        terms: Wasteful terms
        currency: Currency symbol
    """
    ws = wb.create_sheet(title="Negative Keywords")

    cell = ws.cell(row=1, column=1, value="← Back to Summary")
    cell.font = Font(color="0563C1", underline="single")
    cell.hyperlink = "#'Summary'!A1"

    write_header_row(ws, 3, 1, NEGATIVE_COLUMNS, NEGATIVE_HEADER_FILL)
    current_row = 4

    for term in terms:
        fill = CONFIDENCE_FILLS.get(term.confidence)
        for col_idx, (col_key, _, _) in enumerate(NEGATIVE_COLUMNS):
            value = format_cell_value(col_key, getattr(term, col_key), currency)
            cell = ws.cell(row=current_row, column=1 + col_idx, value=value)
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal='left' if col_key in ('search_term', 'campaigns') else 'center')
            if fill is not None and col_key == 'confidence':
                cell.fill = fill
        current_row += 1

    ws.freeze_panes = 'A4'


def create_summary_sheet(wb: Workbook, analysis: NGramAnalysis, currency: str = '€') -> None:
    """
    Create the summary sheet with the headline KPIs and counts.

    Args:
        wb: Workbook object
        analysis: Full analysis result
        currency: Currency symbol
    """
    ws = wb.active
    ws.title = "Summary"

    ws.cell(row=1, column=1, value="N-Gram Insights Summary").font = Font(bold=True, size=16)
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=3)
    ws.cell(row=2, column=1,
            value=f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}").font = Font(italic=True)

    kpis = analysis.kpis
    summary = analysis.ngram_summary
    waste = analysis.waste_summary

    lines = [
        ('Period (days)', analysis.period_days),
        ('Search terms', summary.search_term_count),
        ('Unigrams', summary.unigram_count),
        ('Bigrams', summary.bigram_count),
        ('Trigrams', summary.trigram_count),
        ('Top pattern', kpis.top_pattern.gram if kpis.top_pattern else 'No data'),
        ('Best opportunity', kpis.opportunity.gram if kpis.opportunity else 'No data'),
        ('Average ROAS', f"{kpis.avg_roas:.2f}x" if kpis.avg_roas is not None else 'No data'),
        ('Brand spend', format_currency(kpis.brand_spend, currency)),
        ('Non-brand spend', format_currency(kpis.non_brand_spend, currency)),
        ('Brand share of spend', f"{kpis.brand_spend_pct}%"),
        ('Average CPA', format_currency(analysis.avg_cpa, currency)),
        ('Average CTR', format_percentage(analysis.avg_ctr)),
        ('Wasteful terms', waste.term_count),
        ('Wasted spend', format_currency(waste.total_wasted_cost, currency)),
        ('Est. monthly waste', format_currency(waste.monthly_waste, currency)),
        ('Account-level negatives', waste.account_level_count),
        ('Campaign-level negatives', waste.campaign_level_count),
    ]

    write_header_row(ws, 4, 1, [(None, 'Metric', 30), (None, 'Value', 30)], HEADER_FILL)

    for offset, (label, value) in enumerate(lines, start=5):
        ws.cell(row=offset, column=1, value=label).border = THIN_BORDER
        cell = ws.cell(row=offset, column=2, value=value)
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal='center')

    links_row = 6 + len(lines)
    for idx, sheet_name in enumerate(["N-grams", "Negative Keywords"]):
        cell = ws.cell(row=links_row + idx, column=1, value=sheet_name)
        cell.hyperlink = f"#'{sheet_name}'!A1"
        cell.font = Font(color="0563C1", underline="single")


def create_excel_output(analysis: NGramAnalysis, output_path: str, max_n: int = 3,
                        currency: str = '€') -> str:
    """
    Create the final Excel output file.

    Args:
        analysis: Full analysis result
        output_path: Path where the Excel file should be saved
        max_n: Largest window size in the n-gram table
        currency: Currency symbol

    Returns:
        Path to the created file
    """
    wb = Workbook()

    create_summary_sheet(wb, analysis, currency)
    create_ngram_sheet(wb, analysis.ngrams, max_n, currency)
    create_negative_sheet(wb, analysis.wasteful_terms, currency)

    wb.save(output_path)
    logger.info("Wrote workbook %s (%d n-grams, %d negative candidates)",
                output_path, len(analysis.ngrams), len(analysis.wasteful_terms))

    return output_path


def generate_output_filename(prefix: str = "NGram_Insights") -> str:
    """
    Generate a unique filename with timestamp.

    Args:
        prefix: Prefix for the filename

    Returns:
        Filename string
    """
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return f"{prefix}_{timestamp}_{uuid.uuid4().hex[:8]}.xlsx"
