"""
Tests for the FastAPI endpoints.
"""

import logging
from io import BytesIO

import openpyxl
import pytest
from fastapi.testclient import TestClient

from api.config import Settings
from api.dependencies import get_file_parser
from api.main import app
from api.routers.export_router import attachment_headers
from services.file_parser_service import FileParserService

XLSX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def upload(client, filename, content, media_type='text/csv'):
    return client.post(
        '/api/import/parse',
        files={'file': (filename, content, media_type)},
        headers={'X-Tenant-Slug': 'frsc-hms'}
    )


class TestParseEndpoint:
    """Test POST /api/import/parse."""

    def test_csv_upload(self, client, contributions_csv):
        response = upload(client, 'contributions.csv', contributions_csv.encode('utf-8'))

        assert response.status_code == 200
        body = response.json()
        assert body['filename'] == 'contributions.csv'
        assert len(body['data']) == 2
        assert body['data'][0]['Member ID'] == 'FRSC/HMS/2024/001'
        assert body['errors'] == ['Row 3: Expected 3 columns, found 4']
        assert body['error_details'][0]['kind'] == 'row_shape_mismatch'
        assert body['error_details'][0]['row'] == 3
        assert body['summary'] == {'imported': 2, 'skipped': 1, 'failed': False}

    def test_rejections_logged(self, client, contributions_csv, caplog):
        with caplog.at_level(logging.DEBUG, logger='api.routers.import_router'):
            upload(client, 'contributions.csv', contributions_csv.encode('utf-8'))

        assert "Rejections in contributions.csv: ['Row 3: Expected 3 columns, found 4']" in caplog.text

    def test_clean_upload_logs_no_rejections(self, client, caplog):
        with caplog.at_level(logging.DEBUG, logger='api.routers.import_router'):
            upload(client, 'members.csv', b'name\nAlice')

        assert 'Rejections in' not in caplog.text

    def test_xlsx_upload(self, client, make_xlsx):
        content = make_xlsx([['name', 'age'], ['Alice', 30]])

        response = upload(client, 'members.xlsx', content, XLSX_MEDIA_TYPE)

        assert response.status_code == 200
        assert response.json()['data'] == [{'name': 'Alice', 'age': '30'}]

    def test_unsupported_file(self, client):
        response = upload(client, 'notes.pdf', b'%PDF-1.4', 'application/pdf')

        assert response.status_code == 200
        body = response.json()
        assert body['data'] == []
        assert body['errors'] == ['Unsupported file type: pdf. Please use CSV, XLSX, or XLS files.']
        assert body['summary']['failed'] is True

    def test_file_too_large(self, client):
        app.dependency_overrides[get_file_parser] = lambda: FileParserService(max_file_size_mb=0.0001)

        response = upload(client, 'members.csv', b'a,b\n' + b'1,2\n' * 100)

        body = response.json()
        assert body['data'] == []
        assert body['error_details'][0]['kind'] == 'file_too_large'

    def test_missing_file(self, client):
        response = client.post('/api/import/parse')

        assert response.status_code == 422


class TestExportEndpoints:
    """Test POST /api/export/*."""

    def test_csv_export(self, client):
        response = client.post('/api/export/csv', json={
            'records': [{'a': '1,2', 'b': 'x'}],
            'filename': 'report'
        })

        assert response.status_code == 200
        assert response.text == 'a,b\n"1,2",x'
        assert response.headers['content-type'].startswith('text/csv')
        assert response.headers['content-disposition'] == 'attachment; filename="report.csv"'

    def test_non_latin_filename(self, client):
        """Non-ASCII names get an ASCII fallback and an RFC 5987 filename*."""
        response = client.post('/api/export/csv', json={
            'records': [{'a': '1'}],
            'filename': 'cooperative-Ọkọ'
        })

        assert response.status_code == 200
        assert response.headers['content-disposition'] == (
            'attachment; filename="cooperative-_k_.csv"; '
            "filename*=UTF-8''cooperative-%E1%BB%8Ck%E1%BB%8D.csv"
        )

    def test_line_breaks_stripped_from_filename(self, client):
        response = client.post('/api/export/excel', json={
            'records': [{'a': '1'}],
            'filename': 'report\r\nX-Injected: 1'
        })

        assert response.status_code == 200
        assert 'x-injected' not in response.headers
        assert response.headers['content-disposition'] == (
            'attachment; filename="reportX-Injected: 1.xlsx"'
        )

    @pytest.mark.parametrize('filename,expected', [
        ('members.csv', 'attachment; filename="members.csv"'),
        ('a\\b"c.csv', 'attachment; filename="abc.csv"; filename*=UTF-8\'\'a%5Cb%22c.csv'),
        ('Ọ', 'attachment; filename="_"; filename*=UTF-8\'\'%E1%BB%8C'),
        ('\x00', 'attachment; filename="download"'),
    ])
    def test_attachment_headers(self, filename, expected):
        assert attachment_headers(filename) == {'Content-Disposition': expected}

    def test_csv_export_default_name(self, client):
        response = client.post('/api/export/csv', json={'records': []})

        assert response.text == ''
        assert 'filename="export-' in response.headers['content-disposition']

    def test_excel_export(self, client):
        response = client.post('/api/export/excel', json={
            'records': [],
            'headers': ['Member ID', 'Amount'],
            'sheet_name': 'Contributions'
        })

        assert response.status_code == 200
        assert response.headers['content-type'] == XLSX_MEDIA_TYPE
        sheet = openpyxl.load_workbook(BytesIO(response.content)).worksheets[0]
        assert sheet.title == 'Contributions'
        assert list(sheet.iter_rows(values_only=True)) == [('Member ID', 'Amount')]


class TestTemplateEndpoints:
    """Test GET /api/bulk/*."""

    def test_list_templates(self, client):
        response = client.get('/api/bulk/templates')

        assert response.json() == {'entities': ['contributions', 'loan-repayments', 'members']}

    def test_csv_template(self, client):
        response = client.get('/api/bulk/contributions/template')

        assert response.status_code == 200
        assert response.text.startswith('Member ID,Member Name,Amount')
        assert 'contributions_upload_template.csv' in response.headers['content-disposition']

    def test_excel_template(self, client):
        response = client.get('/api/bulk/loan-repayments/excel-template')

        assert response.status_code == 200
        sheet = openpyxl.load_workbook(BytesIO(response.content)).worksheets[0]
        assert sheet.title == 'Loan Repayments Template'

    def test_unknown_template(self, client):
        response = client.get('/api/bulk/vehicles/template')

        assert response.status_code == 404
        body = response.json()
        assert body['error'] == 'Resource not found'
        assert body['detail']['message'].startswith("No upload template for 'vehicles'")


class TestHealthEndpoints:
    """Test health and ping."""

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'healthy'
        assert body['csv_parser'] == 'ok'
        assert body['excel_parser'] == 'ok'

    def test_ping(self, client):
        assert client.get('/api/ping').json() == {'ping': 'pong'}

    def test_unknown_route(self, client):
        response = client.get('/api/nothing-here')

        assert response.status_code == 404
        assert response.json()['error'] == 'Resource not found'


class TestSettings:
    """Test settings normalization."""

    def test_extensions_normalized(self):
        config = Settings(CSV_EXTENSIONS=['.CSV', ' Txt ', ''], EXCEL_EXTENSIONS=['XLSX'])

        assert config.CSV_EXTENSIONS == ['csv', 'txt']
        assert config.EXCEL_EXTENSIONS == ['xlsx']

    def test_size_limit_in_bytes(self):
        assert Settings(MAX_FILE_SIZE_MB=10).max_file_size_bytes == 10 * 1024 * 1024
