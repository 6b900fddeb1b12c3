# N-gram Insights: search term n-gram mining and negative keyword scoring
from .models import (SearchTermRow, NGram, WastefulTerm, NGramKPIs, NGramAnalysis,
                     GramType, Confidence, NegativeScope)
from .config import AnalysisSettings
from .cache import AnalysisCache, fingerprint
from .classifier import classify_gram
from .ngram_generator import build_ngrams, clean_search_term, extract_ngrams, tokenize
from .metrics import compute_kpis, period_days
from .suggestions import compute_wasteful_terms, compute_baselines, score_confidence
from .pipeline import analyze_search_terms
from .csv_parser import parse_csv, rows_from_dataframe, rows_from_records, filter_rows
from .excel_writer import create_excel_output
from .report import negatives_to_csv, format_ngrams_for_prompt
