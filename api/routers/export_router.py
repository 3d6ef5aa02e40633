"""
Export router - Download records as CSV or Excel.

This module serializes records posted by the dashboard (report tables,
preview grids) into downloadable files.
"""

import logging
import re
from datetime import date
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from api.config import settings
from api.dependencies import Caller, get_caller
from api.schemas.export_schema import ExportRequest, ExcelExportRequest
from services.export_service import ExportService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/export', tags=['export'])

CSV_MEDIA_TYPE = 'text/csv; charset=utf-8'
XLSX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')


def attachment_headers(filename: str) -> dict:
    """
    Content-Disposition header for a download.

    Header values must be latin-1, so names outside ASCII get an ASCII
    ``filename`` fallback plus the exact name as RFC 5987 ``filename*``.
    """
    clean = CONTROL_CHARS.sub('', filename)
    fallback = ''.join(ch if ch.isascii() else '_' for ch in clean)
    fallback = fallback.replace('"', '').replace('\\', '') or 'download'

    disposition = f'attachment; filename="{fallback}"'
    if fallback != clean:
        disposition += f"; filename*=UTF-8''{quote(clean, safe='')}"
    return {'Content-Disposition': disposition}


def download_name(requested: Optional[str], extension: str) -> str:
    """Requested name, or 'export-<today>', with ``extension`` appended."""
    stem = CONTROL_CHARS.sub('', requested or '').strip().replace('"', '')
    if not stem:
        stem = f"export-{date.today().isoformat()}"
    return f"{stem}.{extension}"


@router.post('/csv')
async def export_csv(
    request: ExportRequest,
    caller: Caller = Depends(get_caller)
):
    """
    Export records as CSV.

    An empty `records` list gives an empty file (no header line).

    **Example:**
    ```bash
    curl -X POST http://localhost:8000/api/export/csv \\
         -H "Content-Type: application/json" \\
         -d '{"records": [{"a": "1,2", "b": "x"}]}'
    ```
    """
    content = ExportService.array_to_csv(request.records, request.headers)
    filename = download_name(request.filename, 'csv')

    logger.info(f"CSV export by {caller}: {len(request.records)} records -> {filename}")

    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers=attachment_headers(filename)
    )


@router.post('/excel')
async def export_excel(
    request: ExcelExportRequest,
    caller: Caller = Depends(get_caller)
):
    """
    Export records as an .xlsx workbook.

    The header row is written even when `records` is empty, as long as
    `headers` is given.
    """
    content = ExportService.array_to_excel(
        request.records,
        request.headers,
        sheet_name=request.sheet_name or settings.DEFAULT_SHEET_NAME
    )
    filename = download_name(request.filename, 'xlsx')

    logger.info(f"Excel export by {caller}: {len(request.records)} records -> "
                f"{filename} ({len(content)} bytes)")

    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers=attachment_headers(filename)
    )
