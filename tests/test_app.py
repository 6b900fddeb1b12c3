"""Tests for the Flask endpoints."""

import csv
import io
import os

import pytest


REPORT_CSV = (
    "Search term,Campaign,Campaign ID,Impr.,Clicks,Cost,Conversions,Conv. value\n"
    "acme corner sofa,Brand,1,400,20,50,2,400\n"
    "acme sofa bed,Brand,1,200,10,30,1,150\n"
    "grey corner sofa,Sofas,2,500,15,60,2,300\n"
    "free sofa,Sofas,2,600,12,45,0,0\n"
    "free sofa,Generic,3,300,6,25,0,0\n"
    "free sofa collection,Generic,3,90,4,8,0,0\n"
)


@pytest.fixture
def payload_rows(mixed_rows):
    return [row.to_dict() for row in mixed_rows]


class TestHealth:
    def test_health(self, client):
        response = client.get('/health')
        data = response.get_json()

        assert response.status_code == 200
        assert data['status'] == 'healthy'
        assert data['cached_analyses'] == 0

    def test_index_page(self, client):
        response = client.get('/')
        assert response.status_code == 200
        assert b'upload-form' in response.data


class TestUpload:
    def _post(self, client, content, filename="report.csv", **form):
        data = {'file': (io.BytesIO(content.encode('utf-8')), filename), **form}
        return client.post('/upload', data=data, content_type='multipart/form-data')

    def test_upload_report(self, client):
        from app import app

        response = self._post(client, REPORT_CSV, brand_terms="acme",
                              start_date="2024-01-01", end_date="2024-01-14")
        data = response.get_json()

        assert response.status_code == 200
        assert data['success'] is True
        assert data['summary']['original_rows'] == 6
        assert data['summary']['period_days'] == 14
        assert data['summary']['wasteful_terms'] == 2
        assert data['kpis']['brandSpendPct'] > 0
        assert os.path.exists(os.path.join(app.config['OUTPUT_FOLDER'], data['output_file']))
        assert os.listdir(app.config['UPLOAD_FOLDER']) == []

    def test_upload_with_filters(self, client):
        response = self._post(client, REPORT_CSV, campaign_ids="3")
        data = response.get_json()

        assert data['summary']['analyzed_rows'] == 2

    def test_download_generated_file(self, client):
        output_file = self._post(client, REPORT_CSV).get_json()['output_file']
        response = client.get(f'/download/{output_file}')

        assert response.status_code == 200
        assert response.headers['Content-Type'].startswith(
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')

    def test_no_file(self, client):
        response = client.post('/upload', data={}, content_type='multipart/form-data')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No file uploaded'

    def test_invalid_extension(self, client):
        response = self._post(client, "hello", filename="report.txt")
        assert response.status_code == 400

    def test_missing_columns(self, client):
        response = self._post(client, "Query,Clicks\nsofa,3\n")
        data = response.get_json()

        assert response.status_code == 400
        assert data['missing_columns'] == ['impressions', 'cost']

    def test_invalid_settings(self, client):
        response = self._post(client, REPORT_CSV, max_n="9")
        assert response.status_code == 400
        assert response.get_json()['success'] is False


class TestAnalyzeApi:
    def test_analyze(self, client, payload_rows):
        response = client.post('/api/analyze', json={
            'rows': payload_rows,
            'startDate': '2024-01-01',
            'endDate': '2024-01-07',
            'settings': {'brandTerms': 'acme'},
        })
        analysis = response.get_json()['analysis']

        assert response.status_code == 200
        assert analysis['periodDays'] == 7
        assert analysis['wastefulTerms'][0]['searchTerm'] == 'free sofa'
        assert analysis['kpis']['topPattern'] is not None
        assert all(g['gramType'] != 'Brand' for g in analysis['negativeCandidates'])

    def test_repeated_request_is_cached(self, client, payload_rows):
        client.post('/api/analyze', json={'rows': payload_rows})
        client.post('/api/analyze', json={'rows': payload_rows})

        assert client.get('/health').get_json()['cached_analyses'] == 1

    def test_device_filter(self, client):
        rows = [
            {'searchTerm': 'corner sofa', 'cost': 5, 'device': 'MOBILE'},
            {'searchTerm': 'corner sofa bed', 'cost': 5, 'device': 'DESKTOP'},
        ]
        response = client.post('/api/analyze', json={'rows': rows, 'device': 'MOBILE',
                                                     'settings': {'minSupport': 1}})
        analysis = response.get_json()['analysis']

        assert analysis['ngramSummary']['searchTermCount'] == 1

    def test_empty_rows(self, client):
        response = client.post('/api/analyze', json={'rows': []})
        analysis = response.get_json()['analysis']

        assert response.status_code == 200
        assert analysis['ngrams'] == []
        assert analysis['kpis']['topPattern'] is None

    def test_body_must_be_object(self, client):
        response = client.post('/api/analyze', data='not json', content_type='application/json')
        assert response.status_code == 400

    def test_invalid_period(self, client):
        response = client.post('/api/analyze', json={'rows': [], 'startDate': 'soon', 'endDate': 'later'})
        assert response.status_code == 400

    def test_settings_must_be_object(self, client):
        response = client.post('/api/analyze', json={'rows': [], 'settings': ['acme']})
        assert response.status_code == 400

    def test_rows_must_be_a_list(self, client):
        response = client.post('/api/analyze', json={'rows': 5})

        assert response.status_code == 400
        assert response.get_json()['success'] is False


class TestExportNegatives:
    def test_export_selected(self, client, payload_rows):
        response = client.post('/api/negatives/export', json={
            'rows': payload_rows,
            'startDate': '2024-01-01',
            'endDate': '2024-01-30',
            'settings': {'brandTerms': 'acme'},
            'selected': ['free sofa'],
        })
        records = list(csv.reader(io.StringIO(response.get_data(as_text=True))))

        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert 'negative-keywords-2024-01-01-to-2024-01-30.csv' in response.headers['Content-Disposition']
        assert response.headers['X-Selected-Monthly-Savings'] == '70.00'
        assert [r[0] for r in records[1:]] == ['free sofa']

    def test_export_all(self, client, payload_rows):
        response = client.post('/api/negatives/export', json={
            'rows': payload_rows,
            'settings': {'brandTerms': 'acme'},
        })
        records = list(csv.reader(io.StringIO(response.get_data(as_text=True))))

        assert len(records) == 5
        assert response.headers['X-Selected-Monthly-Savings'] == '0.00'

    def test_export_plain_text(self, client, payload_rows):
        response = client.post('/api/negatives/export', json={
            'rows': payload_rows,
            'settings': {'brandTerms': 'acme'},
            'format': 'text',
        })

        assert response.mimetype == 'text/plain'
        assert response.headers['Content-Disposition'].endswith('.txt')
        assert response.get_data(as_text=True).splitlines() == [
            'free sofa', '120x200 sofa', 'free sofa collection', '120x200 bed',
        ]


def test_download_missing_file(client):
    response = client.get('/download/nothing.xlsx')
    assert response.status_code == 404
