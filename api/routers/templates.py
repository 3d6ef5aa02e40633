"""
Templates router - Bulk-upload template downloads.

This module serves the sample CSV and Excel files shown on each bulk-upload
screen.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from api.dependencies import get_template_service
from api.routers.export_router import CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE, attachment_headers
from api.schemas.export_schema import TemplateListResponse
from services.template_service import TemplateNotFoundError, TemplateService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/bulk', tags=['templates'])


def _get_template_or_404(templates: TemplateService, entity: str):
    try:
        return templates.get_template(entity)
    except TemplateNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No upload template for '{entity}'. "
                   f"Available: {', '.join(templates.list_entities())}"
        )


@router.get('/templates', response_model=TemplateListResponse)
async def list_templates(templates: TemplateService = Depends(get_template_service)):
    """List entities that have an upload template."""
    return TemplateListResponse(entities=templates.list_entities())


@router.get('/{entity}/template')
async def download_csv_template(
    entity: str,
    templates: TemplateService = Depends(get_template_service)
):
    """
    Download the CSV upload template for an entity.

    **Example:**
    ```bash
    curl -O http://localhost:8000/api/bulk/contributions/template
    ```
    """
    template = _get_template_or_404(templates, entity)
    logger.info(f"Serving CSV template for {entity}")

    return Response(
        content=templates.render_csv(entity),
        media_type=CSV_MEDIA_TYPE,
        headers=attachment_headers(template.filename('csv'))
    )


@router.get('/{entity}/excel-template')
async def download_excel_template(
    entity: str,
    templates: TemplateService = Depends(get_template_service)
):
    """Download the Excel upload template for an entity."""
    template = _get_template_or_404(templates, entity)
    logger.info(f"Serving Excel template for {entity}")

    return Response(
        content=templates.render_excel(entity),
        media_type=XLSX_MEDIA_TYPE,
        headers=attachment_headers(template.filename('xlsx'))
    )
