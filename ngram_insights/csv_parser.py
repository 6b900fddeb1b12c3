"""
CSV Parser Utility for N-gram Insights
Parses Google Ads and Windsor.ai search term exports into search term rows,
and applies the device / campaign pre-filters.
"""

import logging
import os
import zipfile
from io import StringIO
from typing import Any, Iterable, List, Mapping, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from .exceptions import DataValidationError, FileParseError
from .metrics import get_totals
from .models import SearchTermRow
from .ngram_generator import clean_search_term

logger = logging.getLogger(__name__)


# Column mapping for Google Ads UI, Google Ads API and Windsor.ai exports
COLUMN_MAPPING = {
    'search_term': ['Search term', 'Search Term', 'search term', 'Search terms', 'Query',
                    'searchTerm', 'search_term', 'search_term_view.search_term'],
    'campaign_name': ['Campaign', 'Campaign name', 'Campaign Name', 'campaignName',
                      'campaign', 'campaign_name', 'campaign.name'],
    'campaign_id': ['Campaign ID', 'Campaign Id', 'campaignId', 'campaign_id', 'campaign.id'],
    'device': ['Device', 'device', 'segments.device'],
    'impressions': ['Impr.', 'Impressions', 'impressions', 'metrics.impressions'],
    'clicks': ['Clicks', 'clicks', 'metrics.clicks'],
    'cost': ['Cost', 'cost', 'Spend', 'spend'],
    'cost_micros': ['cost_micros', 'costMicros', 'metrics.cost_micros'],
    'conversions': ['Conversions', 'Conv.', 'conversions', 'metrics.conversions'],
    'conversion_value': ['Conv. value', 'Conversion value', 'Total conv. value', 'conversionValue',
                         'conversion_value', 'conversions_value', 'metrics.conversions_value'],
}

# Fuzzy fallbacks, only for columns whose keywords cannot collide
FUZZY_KEYWORDS = {
    'search_term': ['search term', 'search_term', 'query'],
    'impressions': ['impression'],
}

REQUIRED_COLUMNS = ['search_term', 'impressions', 'clicks', 'cost']
NUMERIC_COLUMNS = ['impressions', 'clicks', 'cost', 'cost_micros', 'conversions', 'conversion_value']
HEADER_KEYWORDS = ['search term', 'search_term', 'searchterm', 'campaign', 'impr', 'clicks', 'cost']


def find_column(df: pd.DataFrame, possible_names: List[str]) -> Optional[str]:
    """Find the actual column name from a list of possible names (case-insensitive)."""
    # First try exact match
    for name in possible_names:
        if name in df.columns:
            return name

    # Try case-insensitive match
    df_columns_lower = {str(col).lower().strip(): col for col in df.columns}
    for name in possible_names:
        if name.lower() in df_columns_lower:
            return df_columns_lower[name.lower()]

    return None


def find_column_fuzzy(df: pd.DataFrame, keywords: List[str]) -> Optional[str]:
    """Find column by checking if any keyword is in the column name."""
    for col in df.columns:
        col_lower = str(col).lower()
        for keyword in keywords:
            if keyword in col_lower:
                return col
    return None


def standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Standardize column names to our internal naming convention."""
    column_renames = {}

    for standard_name, possible_names in COLUMN_MAPPING.items():
        actual_name = find_column(df, possible_names)
        if actual_name is None and standard_name in FUZZY_KEYWORDS:
            actual_name = find_column_fuzzy(df, FUZZY_KEYWORDS[standard_name])
        if actual_name is not None and actual_name not in column_renames:
            column_renames[actual_name] = standard_name

    df = df.rename(columns=column_renames)

    if 'cost' not in df.columns and 'cost_micros' in df.columns:
        df['cost'] = pd.to_numeric(df['cost_micros'], errors='coerce').fillna(0) / 1_000_000

    return df


def clean_numeric_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Strip currency symbols and separators; blanks and negatives become 0."""
    df = df.copy()
    for col in NUMERIC_COLUMNS:
        if col in df.columns:
            values = df[col].astype(str).str.replace(r'[$€£,%\s]', '', regex=True)
            df[col] = pd.to_numeric(values, errors='coerce').fillna(0).clip(lower=0)
    return df


def drop_total_rows(df: pd.DataFrame) -> pd.DataFrame:
    """Remove the 'Total: ...' footer rows of Google Ads UI exports."""
    if 'search_term' not in df.columns:
        return df
    mask = df['search_term'].astype(str).str.strip().str.startswith('Total:')
    return df[~mask].reset_index(drop=True)


def detect_file_type(file_path: str) -> str:
    """Detect if file is CSV or Excel based on extension and content."""
    ext = os.path.splitext(file_path)[1].lower()

    if ext in ['.xlsx', '.xls']:
        return 'excel'
    elif ext == '.csv':
        return 'csv'

    # Try to detect by reading first few bytes
    with open(file_path, 'rb') as f:
        header = f.read(4)
    if header == b'PK\x03\x04':  # ZIP/XLSX signature
        return 'excel'
    return 'csv'


def _read_text(file_path: str) -> str:
    with open(file_path, 'rb') as f:
        raw = f.read()

    # Google Ads "CSV (Excel)" downloads are UTF-16 with a BOM
    if raw.startswith((b'\xff\xfe', b'\xfe\xff')):
        encodings = ['utf-16']
    else:
        encodings = ['utf-8-sig', 'cp1252', 'latin-1']

    for encoding in encodings:
        try:
            content = raw.decode(encoding)
        except UnicodeDecodeError:
            continue
        logger.debug("Read %s with %s encoding", file_path, encoding)
        return content

    raise FileParseError("Unable to decode file. Please upload a UTF-8 CSV or an Excel file.")


def _find_header_row(lines: List[str]) -> int:
    """Google Ads UI exports put a title and date range above the header."""
    for i, line in enumerate(lines[:30]):
        lowered = line.lower()
        # A report title such as "Search terms report" hits at most one keyword
        if sum(1 for keyword in HEADER_KEYWORDS if keyword in lowered) >= 2:
            return i
    return 0


def _read_csv_content(content: str) -> pd.DataFrame:
    lines = content.splitlines()
    header_idx = _find_header_row(lines)
    clean_content = '\n'.join(lines[header_idx:])

    sep = '\t' if clean_content.split('\n', 1)[0].count('\t') > 0 else ','
    try:
        return pd.read_csv(StringIO(clean_content), sep=sep, on_bad_lines='skip', engine='python')
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise FileParseError(f"Unable to parse file. Please ensure it's a valid CSV or Excel file. Error: {e}") from e


def parse_csv(file_path: str) -> pd.DataFrame:
    """
    Parse a CSV or Excel search term report and return a standardized DataFrame.

    Args:
        file_path: Path to the file

    Returns:
        DataFrame with standardized column names and clean numeric columns

    Raises:
        FileParseError: If the file cannot be read
    """
    if detect_file_type(file_path) == 'excel':
        try:
            df = pd.read_excel(file_path)
        except (ValueError, OSError, zipfile.BadZipFile) as e:
            raise FileParseError(f"Unable to read Excel file: {e}") from e
        if find_column(df, COLUMN_MAPPING['search_term']) is None:
            # Title rows above the header: re-read through the text path
            df = _read_csv_content(df.to_csv(index=False))
        logger.debug("Read %s as Excel", file_path)
    else:
        df = _read_csv_content(_read_text(file_path))

    if df is None or len(df.columns) == 0:
        raise FileParseError("Could not read any data from the file. Please check the file format.")

    logger.debug("Original columns: %s", list(df.columns))

    df = standardize_columns(df)
    df = drop_total_rows(df)
    df = clean_numeric_columns(df)

    logger.debug("Standardized columns: %s", list(df.columns))

    return df


def validate_csv(df: pd.DataFrame) -> Tuple[bool, List[str]]:
    """
    Validate that the report has the required columns.

    Args:
        df: DataFrame to validate

    Returns:
        Tuple of (is_valid, list of missing required columns)
    """
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    return len(missing) == 0, missing


def rows_from_dataframe(df: pd.DataFrame) -> List[SearchTermRow]:
    """
    Convert a standardized DataFrame into search term rows.

    Raises:
        DataValidationError: If required columns are missing
    """
    is_valid, missing = validate_csv(df)
    if not is_valid:
        raise DataValidationError(f"Missing required columns: {', '.join(missing)}", missing)

    df = df.astype(object).where(pd.notna(df), None)
    return [SearchTermRow.model_validate(record) for record in df.to_dict('records')]


def rows_from_records(records: Iterable[Mapping[str, Any]]) -> List[SearchTermRow]:
    """
    Convert JSON records (camelCase or snake_case keys) into search term rows.

    Raises:
        DataValidationError: If records is not a list or a record is not an object
    """
    if records is None:
        return []
    if not isinstance(records, (list, tuple)):
        raise DataValidationError("Rows must be a list of objects")

    rows = []
    for idx, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise DataValidationError(f"Row {idx} is not an object")
        try:
            rows.append(SearchTermRow.model_validate(dict(record)))
        except ValidationError as e:
            raise DataValidationError(f"Row {idx} is invalid: {e}") from e
    return rows


def filter_rows(rows: Iterable[SearchTermRow], device: Optional[str] = None,
                campaign_ids: Optional[Iterable[str]] = None) -> List[SearchTermRow]:
    """
    Apply the device and campaign filters before analysis.

    Args:
        rows: Search term rows
        device: Keep only this device (None or 'ALL' keeps every device)
        campaign_ids: Keep only these campaigns (None keeps all)

    Returns:
        Filtered rows
    """
    device = (device or '').strip().upper()
    ids = {str(c) for c in campaign_ids} if campaign_ids else None

    result = []
    for row in rows:
        if device and device != 'ALL' and row.device != device:
            continue
        if ids is not None and row.campaign_id not in ids:
            continue
        result.append(row)
    return result


def get_data_summary(rows: List[SearchTermRow]) -> dict:
    """
    Get a summary of the data.

    Args:
        rows: Search term rows

    Returns:
        Dictionary with summary statistics
    """
    return {
        'total_rows': len(rows),
        'total_campaigns': len({r.campaign_name for r in rows if r.campaign_name}),
        'total_search_terms': len({clean_search_term(r.search_term) for r in rows} - {''}),
        'devices': sorted({r.device for r in rows if r.device}),
        **get_totals(rows),
    }
