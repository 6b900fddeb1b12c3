"""
N-gram Insights Web Application
Flask application for n-gram mining and negative keyword scoring of Google Ads
search term reports.
"""

import logging
import os
import time
import uuid
from datetime import datetime

from flask import Flask, Response, jsonify, render_template, request, send_file
from werkzeug.utils import secure_filename

from ngram_insights.cache import AnalysisCache
from ngram_insights.config import AnalysisSettings
from ngram_insights.csv_parser import (filter_rows, get_data_summary, parse_csv,
                                       rows_from_dataframe, rows_from_records)
from ngram_insights.excel_writer import create_excel_output, generate_output_filename
from ngram_insights.exceptions import DataValidationError, NGramInsightsError
from ngram_insights.metrics import period_days
from ngram_insights.pipeline import analyze_search_terms
from ngram_insights.report import negatives_to_csv, negatives_to_text
from ngram_insights.suggestions import select_terms, summarize_waste

logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)

# Configuration
app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024  # 50MB max file size
app.config['UPLOAD_FOLDER'] = os.environ.get(
    'NGRAM_UPLOAD_FOLDER', os.path.join(os.path.dirname(__file__), 'uploads'))
app.config['OUTPUT_FOLDER'] = os.environ.get(
    'NGRAM_OUTPUT_FOLDER', os.path.join(os.path.dirname(__file__), 'outputs'))
app.config['ALLOWED_EXTENSIONS'] = {'csv', 'tsv', 'xlsx', 'xls'}
app.config['MAX_FILE_AGE'] = 3600  # seconds
app.config['ANALYSIS_SETTINGS'] = AnalysisSettings.from_env()
app.config['ANALYSIS_CACHE'] = AnalysisCache(ttls=app.config['ANALYSIS_SETTINGS'].cache_ttls)

# Ensure directories exist
os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
os.makedirs(app.config['OUTPUT_FOLDER'], exist_ok=True)


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in app.config['ALLOWED_EXTENSIONS']


def error_response(message: str, status: int, **extra):
    return jsonify({'success': False, 'error': message, **extra}), status


def resolve_period(values) -> int:
    """
    Period length from startDate/endDate (inclusive) or an explicit periodDays.

    Raises:
        DataValidationError: If the dates cannot be parsed
    """
    start = values.get('startDate') or values.get('start_date')
    end = values.get('endDate') or values.get('end_date')
    try:
        if start and end:
            return period_days(start, end)
        if values.get('periodDays'):
            return max(int(values.get('periodDays')), 1)
    except (TypeError, ValueError) as e:
        raise DataValidationError(f"Invalid reporting period: {e}") from e
    return None


def json_payload() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise DataValidationError("Request body must be a JSON object")
    return payload


def analyze_payload(payload: dict):
    """Run the pipeline on a dashboard JSON payload."""
    rows = rows_from_records(payload.get('rows') or payload.get('searchTerms') or [])
    rows = filter_rows(rows, device=payload.get('device'), campaign_ids=payload.get('campaignIds'))

    overrides = payload.get('settings') or {}
    if not isinstance(overrides, dict):
        raise DataValidationError("'settings' must be an object")

    settings = app.config['ANALYSIS_SETTINGS'].with_overrides(overrides)
    analysis = analyze_search_terms(rows, settings, resolve_period(payload),
                                    cache=app.config['ANALYSIS_CACHE'])
    return rows, analysis


def process_file(filepath: str, form) -> dict:
    """
    Process an uploaded report through the entire N-gram analysis pipeline.

    Args:
        filepath: Path to the uploaded file
        form: Request form with optional thresholds, brand terms, period and filters

    Returns:
        Dictionary with processing results and output file name
    """
    df = parse_csv(filepath)
    rows = rows_from_dataframe(df)
    initial_summary = get_data_summary(rows)

    campaign_ids = [c for c in form.get('campaign_ids', '').split(',') if c.strip()]
    rows = filter_rows(rows, device=form.get('device'), campaign_ids=campaign_ids or None)

    settings = app.config['ANALYSIS_SETTINGS'].with_overrides(form)
    analysis = analyze_search_terms(rows, settings, resolve_period(form),
                                    cache=app.config['ANALYSIS_CACHE'])

    output_filename = generate_output_filename()
    output_path = os.path.join(app.config['OUTPUT_FOLDER'], output_filename)
    create_excel_output(analysis, output_path, max_n=settings.max_n)

    return {
        'success': True,
        'output_file': output_filename,
        'summary': {
            'original_rows': initial_summary['total_rows'],
            'analyzed_rows': len(rows),
            'campaigns': initial_summary['total_campaigns'],
            'total_search_terms': initial_summary['total_search_terms'],
            'total_cost': initial_summary['total_cost'],
            'total_conversions': initial_summary['total_conversions'],
            'period_days': analysis.period_days,
            **analysis.ngram_summary.model_dump(),
            'wasteful_terms': analysis.waste_summary.term_count,
            'wasted_cost': round(analysis.waste_summary.total_wasted_cost, 2),
        },
        'kpis': analysis.kpis.to_dict(),
    }


@app.route('/')
def index():
    """Render the main page."""
    return render_template('index.html')


@app.route('/upload', methods=['POST'])
def upload_file():
    """Handle file upload and processing."""
    if 'file' not in request.files:
        return error_response('No file uploaded', 400)

    file = request.files['file']

    if file.filename == '':
        return error_response('No file selected', 400)

    if not allowed_file(file.filename):
        return error_response('Invalid file type. Please upload a CSV or Excel file.', 400)

    filename = secure_filename(file.filename)
    filepath = os.path.join(app.config['UPLOAD_FOLDER'], f"{uuid.uuid4().hex}_{filename}")
    file.save(filepath)

    try:
        return jsonify(process_file(filepath, request.form))
    except DataValidationError as e:
        return error_response(str(e), 400, missing_columns=e.missing)
    except NGramInsightsError as e:
        return error_response(str(e), 400)
    except Exception as e:
        logger.exception("Processing failed for %s", filename)
        return error_response(f'Processing error: {e}', 500)
    finally:
        try:
            os.remove(filepath)
        except OSError:
            logger.warning("Could not remove upload %s", filepath)


@app.route('/api/analyze', methods=['POST'])
def analyze():
    """Analyze search term rows posted as JSON by the dashboard."""
    try:
        _, analysis = analyze_payload(json_payload())
    except NGramInsightsError as e:
        return error_response(str(e), 400)

    return jsonify({'success': True, 'analysis': analysis.to_dict()})


@app.route('/api/negatives/export', methods=['POST'])
def export_negatives():
    """Export the selected (or all) wasteful terms as CSV, or as a plain list with format=text."""
    try:
        payload = json_payload()
        _, analysis = analyze_payload(payload)
    except NGramInsightsError as e:
        return error_response(str(e), 400)

    selected = payload.get('selected')
    terms = select_terms(analysis.wasteful_terms, selected) if selected else analysis.wasteful_terms
    summary = summarize_waste(analysis.wasteful_terms, selected)

    start = payload.get('startDate', 'period')
    end = payload.get('endDate', 'export')
    if payload.get('format') == 'text':
        body, mimetype, ext = negatives_to_text(terms), 'text/plain', 'txt'
    else:
        body, mimetype, ext = negatives_to_csv(terms), 'text/csv', 'csv'
    filename = secure_filename(f"negative-keywords-{start}-to-{end}.{ext}")

    return Response(
        body,
        mimetype=mimetype,
        headers={
            'Content-Disposition': f'attachment; filename={filename}',
            'X-Selected-Monthly-Savings': f"{summary.selected_monthly_savings:.2f}",
        },
    )


@app.route('/download/<filename>')
def download_file(filename):
    """Download the generated Excel file."""
    filepath = os.path.join(app.config['OUTPUT_FOLDER'], secure_filename(filename))

    if not os.path.exists(filepath):
        return error_response('File not found', 404)

    return send_file(
        filepath,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=filename
    )


@app.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now().isoformat(),
        'cached_analyses': app.config['ANALYSIS_CACHE'].size(),
    })


def cleanup_old_files():
    """Remove old files from upload and output folders."""
    max_age = app.config['MAX_FILE_AGE']
    current_time = time.time()

    for folder in [app.config['UPLOAD_FOLDER'], app.config['OUTPUT_FOLDER']]:
        if not os.path.exists(folder):
            continue
        for filename in os.listdir(folder):
            filepath = os.path.join(folder, filename)
            if os.path.isfile(filepath) and current_time - os.path.getmtime(filepath) > max_age:
                try:
                    os.remove(filepath)
                except OSError:
                    logger.warning("Could not remove %s", filepath)


if __name__ == '__main__':
    logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'INFO'),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    # Run cleanup on startup
    cleanup_old_files()

    # Run the Flask development server
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1', host='0.0.0.0', port=5000)
