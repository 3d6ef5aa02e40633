"""
FastAPI entry point for the tabular import service.

Builds the app, wires the import, export and template routers under the
API prefix, and exposes the probes used by the dashboard's load balancer.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.config import settings
from api.routers import export_router, import_router, templates
from api.schemas.common import ErrorResponse, HealthCheckResponse
from services.csv_service import CSVParser
from services.excel_service import ExcelReader
from services.export_service import ExportService

logger = logging.getLogger(__name__)

# Records pushed through each serializer/parser pair by /health
PROBE_RECORDS: List[Dict[str, str]] = [
    {'Member ID': 'FRSC/HMS/2024/001', 'Amount': '50000'},
    {'Member ID': 'FRSC/HMS/2024/002', 'Amount': '75000'},
]


def configure_logging():
    """Send service logs to the configured file and to stderr."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
        handlers=[
            logging.FileHandler(settings.LOG_FILE),
            logging.StreamHandler()
        ]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.API_TITLE} v{settings.API_VERSION} starting")
    logger.info(f"Upload limit {settings.max_file_size_bytes} bytes; "
                f"CSV {settings.CSV_EXTENSIONS}, Excel {settings.EXCEL_EXTENSIONS}")

    yield

    logger.info(f"{settings.API_TITLE} stopped")


def error_response(request: Request, status_code: int, error: str, detail=None) -> JSONResponse:
    """Render an ErrorResponse body."""
    body = ErrorResponse(error=error, detail=detail, path=str(request.url))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode='json'))


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        detail = {"message": str(exc)} if settings.DEBUG else None
        return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR,
                              "Internal server error", detail)

    @app.exception_handler(404)
    async def not_found(request: Request, exc):
        detail = {"path": request.url.path}
        message = getattr(exc, 'detail', None)
        # Starlette's default detail for unmatched routes adds nothing
        if message and message != 'Not Found':
            detail["message"] = message
        return error_response(request, status.HTTP_404_NOT_FOUND, "Resource not found", detail)


def probe_round_trip(serialize: Callable, parse: Callable) -> str:
    """
    Serialize PROBE_RECORDS and parse them back.

    Returns:
        'ok', 'mismatch' when the records differ, or 'error' when either
        step raises
    """
    try:
        result = parse(serialize(PROBE_RECORDS))
    except Exception as e:
        logger.error(f"Round-trip probe failed: {e}")
        return 'error'
    return 'ok' if result.data == PROBE_RECORDS and not result.errors else 'mismatch'


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS
    )

    register_exception_handlers(app)

    for module in (import_router, export_router, templates):
        app.include_router(module.router, prefix=settings.API_PREFIX)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        tenant = request.headers.get(settings.TENANT_HEADER, '-')
        response = await call_next(request)
        logger.info(f"[{tenant}] {request.method} {request.url.path} -> {response.status_code}")
        return response

    @app.get('/', include_in_schema=False)
    async def index():
        return {
            'service': settings.API_TITLE,
            'version': settings.API_VERSION,
            'endpoints': {
                'parse': f'{settings.API_PREFIX}/import/parse',
                'export': f'{settings.API_PREFIX}/export/{{csv|excel}}',
                'templates': f'{settings.API_PREFIX}/bulk/templates'
            },
            'docs': app.docs_url
        }

    @app.get('/health', response_model=HealthCheckResponse, tags=['health'])
    async def health():
        """
        Report whether both parsers still read back what the exporters write.

        `status` is `healthy` when both probes pass, `degraded` when one
        fails and `unhealthy` when both do.

        **Example:**
        ```bash
        curl http://localhost:8000/health
        ```
        """
        csv_state = probe_round_trip(ExportService.array_to_csv, CSVParser.parse_content)
        excel_state = probe_round_trip(ExportService.array_to_excel, ExcelReader.parse_bytes)

        passing = [csv_state, excel_state].count('ok')
        overall = {2: 'healthy', 1: 'degraded', 0: 'unhealthy'}[passing]

        return HealthCheckResponse(
            status=overall,
            timestamp=datetime.utcnow(),
            version=settings.API_VERSION,
            csv_parser=csv_state,
            excel_parser=excel_state
        )

    @app.get(f'{settings.API_PREFIX}/ping', tags=['health'])
    async def ping():
        return {'ping': 'pong'}

    return app


configure_logging()
app = create_app()


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'api.main:app',
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
