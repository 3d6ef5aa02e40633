"""
FastAPI dependencies: service factories and caller identification.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Header, Request, status

from api.config import settings
from services.file_parser_service import FileParserService
from services.template_service import TemplateService

logger = logging.getLogger(__name__)


class Caller:
    """Who sent the request: an API key (or 'public') and the dashboard tenant."""

    def __init__(self, key: str, tenant: Optional[str] = None):
        self.key = key
        self.tenant = tenant

    def __str__(self) -> str:
        return f"{self.key}@{self.tenant or '-'}"


def get_file_parser() -> FileParserService:
    """
    Parser built from the upload settings.

    Usage:
        @router.post("/parse")
        def parse(parser: FileParserService = Depends(get_file_parser)):
            result = parser.parse_file(raw_file)
    """
    return FileParserService(
        max_file_size_mb=settings.MAX_FILE_SIZE_MB,
        csv_extensions=settings.CSV_EXTENSIONS,
        excel_extensions=settings.EXCEL_EXTENSIONS,
        csv_encoding=settings.CSV_ENCODING,
        max_sheet_cells=settings.MAX_SHEET_CELLS
    )


def get_template_service() -> TemplateService:
    return TemplateService()


def get_api_key(
    x_api_key: Optional[str] = Header(None, alias=settings.API_KEY_HEADER)
) -> str:
    """
    Require an API key when key auth is enabled.

    Raises:
        HTTPException: 401 if auth is enabled and no key was sent
    """
    if not settings.ENABLE_API_KEY_AUTH:
        return "public"

    if not x_api_key:
        logger.warning("Rejected request without API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    # TODO: Validate API key against the tenant's key store
    return x_api_key


def get_tenant_slug(request: Request) -> Optional[str]:
    """Tenant slug from the dashboard header, or None."""
    tenant = (request.headers.get(settings.TENANT_HEADER) or '').strip()
    return tenant or None


def get_caller(
    api_key: str = Depends(get_api_key),
    tenant: Optional[str] = Depends(get_tenant_slug)
) -> Caller:
    return Caller(api_key, tenant)
