#!/usr/bin/env python3
"""
Tabular Import/Export CLI - Dual Mode

This script can operate in two modes:
1. Direct mode (default): Parses files locally using services
2. API mode: Uploads files to the FastAPI backend

Usage:
    # Direct mode (uses services directly)
    python scripts/tabular_cli.py parse --file members.csv

    # API mode (uses FastAPI backend)
    python scripts/tabular_cli.py parse --file members.xlsx --api-url http://localhost:8000

    # Export records from a JSON file
    python scripts/tabular_cli.py export --input records.json --output report.xlsx

    # Write an upload template
    python scripts/tabular_cli.py template --entity contributions --format csv
"""

import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import json
import logging
from typing import Optional

import click
import requests
from dotenv import load_dotenv

from backend.models.parse_result import RawFile
from services.export_service import ExportService
from services.file_parser_service import DEFAULT_MAX_FILE_SIZE_MB, FileParserService
from services.template_service import TemplateNotFoundError, TemplateService

# Load environment variables
load_dotenv()

# Configure logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING')
LOG_FILE = os.getenv('LOG_FILE', 'cli.log')

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOG_FILE),
        logging.StreamHandler(sys.stderr)
    ]
)

logger = logging.getLogger('tabular_cli')

# Configuration
MAX_FILE_SIZE_MB = float(os.getenv('MAX_FILE_SIZE_MB', DEFAULT_MAX_FILE_SIZE_MB))
XLSX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


@click.group()
def cli():
    """Parse bulk-upload files and export records as CSV or Excel."""


@cli.command('parse')
@click.option('--file', '-f', 'file_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='CSV, TXT, XLSX or XLS file to parse')
@click.option('--json', 'as_json', is_flag=True, help='Print parsed records as JSON')
@click.option('--api-url', envvar='API_URL', help='FastAPI backend URL (enables API mode)')
def parse_cmd(file_path: str, as_json: bool, api_url: Optional[str]):
    """Parse a file and report imported and skipped rows."""

    if api_url:
        click.echo(f"🌐 API Mode: Using backend at {api_url}", err=True)
        response = parse_via_api(api_url, file_path)
    else:
        response = parse_direct(file_path)

    report_parse(response, as_json)


@cli.command('export')
@click.option('--input', '-i', 'input_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='JSON file containing a list of records')
@click.option('--output', '-o', 'output_path', required=True, type=click.Path(dir_okay=False),
              help='Output file (.csv or .xlsx)')
@click.option('--headers', help='Comma-separated column order')
@click.option('--sheet-name', default='Sheet1', show_default=True, help='Worksheet title for .xlsx output')
def export_cmd(input_path: str, output_path: str, headers: Optional[str], sheet_name: str):
    """Write records from a JSON file to CSV or Excel."""

    try:
        records = json.loads(Path(input_path).read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        click.echo(f"❌ Could not read records: {e}", err=True)
        sys.exit(1)

    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        click.echo("❌ Input must be a JSON list of objects", err=True)
        sys.exit(1)

    columns = [h.strip() for h in headers.split(',')] if headers else None
    suffix = Path(output_path).suffix.lower()

    if suffix == '.csv':
        Path(output_path).write_text(ExportService.array_to_csv(records, columns), encoding='utf-8')
    elif suffix == '.xlsx':
        Path(output_path).write_bytes(ExportService.array_to_excel(records, columns, sheet_name))
    else:
        click.echo(f"❌ Unsupported output type '{suffix}'. Use .csv or .xlsx", err=True)
        sys.exit(1)

    click.echo(f"✓ Wrote {len(records)} records to {output_path}")


@cli.command('template')
@click.option('--entity', '-e', required=True, help='Entity name (e.g. members, contributions)')
@click.option('--format', 'fmt', type=click.Choice(['csv', 'xlsx']), default='csv', show_default=True,
              help='Template format')
@click.option('--output', '-o', 'output_path', type=click.Path(dir_okay=False),
              help='Output file (default: <entity>_upload_template.<format>)')
def template_cmd(entity: str, fmt: str, output_path: Optional[str]):
    """Write a bulk-upload template."""

    templates = TemplateService()

    try:
        template = templates.get_template(entity)
    except TemplateNotFoundError as e:
        click.echo(f"❌ {e}. Available: {', '.join(templates.list_entities())}", err=True)
        sys.exit(1)

    output_path = output_path or template.filename(fmt)

    if fmt == 'csv':
        Path(output_path).write_text(templates.render_csv(entity), encoding='utf-8')
    else:
        Path(output_path).write_bytes(templates.render_excel(entity))

    click.echo(f"✓ Wrote {entity} template to {output_path}")


# ============================================================================
# Direct Mode Implementation (Uses Services Directly)
# ============================================================================

def parse_direct(file_path: str) -> dict:
    """Parse a file locally and return the API-shaped response."""
    service = FileParserService(max_file_size_mb=MAX_FILE_SIZE_MB)
    result = service.parse_file(RawFile.from_path(file_path))

    return {
        'filename': Path(file_path).name,
        'data': result.records,
        'errors': result.messages,
        'summary': result.summary().model_dump()
    }


# ============================================================================
# API Mode Implementation (Uses FastAPI Backend)
# ============================================================================

def parse_via_api(api_url: str, file_path: str) -> dict:
    """Upload a file to the backend parse endpoint."""

    media_type = XLSX_MEDIA_TYPE if file_path.lower().endswith(('.xlsx', '.xls')) else 'text/csv'

    try:
        with open(file_path, 'rb') as f:
            response = requests.post(
                f"{api_url.rstrip('/')}/api/import/parse",
                files={'file': (Path(file_path).name, f, media_type)},
                timeout=60
            )
    except requests.exceptions.RequestException as e:
        click.echo(f"❌ Network error: {e}", err=True)
        sys.exit(1)

    if response.status_code != 200:
        click.echo(f"❌ Parse failed ({response.status_code}): {response.text}", err=True)
        sys.exit(1)

    return response.json()


def report_parse(response: dict, as_json: bool):
    """Print a parse response and exit non-zero if the file was rejected."""
    summary = response.get('summary', {})
    errors = response.get('errors', [])

    if as_json:
        click.echo(json.dumps(response.get('data', []), indent=2, ensure_ascii=False))

    if summary.get('failed'):
        click.echo(f"\n✗ {response.get('filename')}: {errors[0] if errors else 'file rejected'}", err=True)
        sys.exit(1)

    click.echo(f"\n✓ {response.get('filename')}: {summary.get('imported', 0)} rows imported, "
               f"{summary.get('skipped', 0)} rows skipped", err=as_json)

    for error in errors:
        click.echo(f"  ⚠️  {error}", err=as_json)


if __name__ == '__main__':
    cli()
