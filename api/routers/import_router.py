"""
Import router - Parse uploaded CSV and Excel files.

This module provides the bulk-upload parse endpoint. The parsed records are
returned to the dashboard, which previews them and forwards them to the
entity's bulk-create endpoint.
"""

import logging
from fastapi import APIRouter, UploadFile, File, Depends, status

from api.dependencies import Caller, get_caller, get_file_parser
from api.schemas.import_schema import ParseResultResponse
from backend.models.parse_result import RawFile
from services.file_parser_service import FileParserService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/import', tags=['import'])


@router.post('/parse', response_model=ParseResultResponse, status_code=status.HTTP_200_OK)
async def parse_upload(
    file: UploadFile = File(..., description="CSV, TXT, XLSX or XLS file to parse"),
    parser: FileParserService = Depends(get_file_parser),
    caller: Caller = Depends(get_caller)
):
    """
    Parse an uploaded file into records.

    The declared upload size is checked before the body is read. Rows that
    do not fit the header row are skipped and reported; the rest are
    returned.

    **Returns:**
    - 200 with `data`, `errors`, `error_details` and `summary`, also when
      the whole file was rejected (see `summary.failed`)

    **Example:**
    ```bash
    curl -F "file=@contributions.csv" http://localhost:8000/api/import/parse
    ```
    """
    filename = file.filename or ''
    logger.info(f"Parse request from {caller}: {filename} ({file.size} bytes)")

    raw_file = RawFile(filename, file.size, file.file.read)
    result = parser.parse_file(raw_file)

    summary = result.summary()
    logger.info(f"Parsed {filename}: {summary.imported} imported, {summary.skipped} skipped"
                + (" (file rejected)" if summary.failed else ""))
    if result.has_errors:
        logger.debug(f"Rejections in {filename}: {result.messages}")

    return ParseResultResponse.from_result(filename, result)
