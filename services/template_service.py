"""
Template Service - sample files for bulk uploads.

Each bulk-upload screen offers a template with the expected columns and two
sample rows. Templates are rendered with the export service so that parsing
a downloaded template gives back exactly its sample rows.
"""

import logging
from typing import Dict, List, Optional

from services.export_service import ExportService

logger = logging.getLogger(__name__)


class TemplateNotFoundError(KeyError):
    """No bulk-upload template is defined for the requested entity."""

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(entity)

    def __str__(self) -> str:
        return f"No upload template for '{self.entity}'"


class UploadTemplate:
    """Columns, sample rows and display settings for one entity."""

    def __init__(self, entity: str, sheet_name: str, columns: List[str],
                 sample_rows: List[List[str]], column_widths: Optional[List[int]] = None):
        self.entity = entity
        self.sheet_name = sheet_name
        self.columns = columns
        self.sample_rows = sample_rows
        self.column_widths = column_widths or [15] * len(columns)

    @property
    def records(self) -> List[Dict[str, str]]:
        return [dict(zip(self.columns, row)) for row in self.sample_rows]

    @property
    def widths_by_column(self) -> Dict[str, int]:
        return dict(zip(self.columns, self.column_widths))

    def filename(self, extension: str) -> str:
        return f"{self.entity.replace('-', '_')}_upload_template.{extension}"


TEMPLATES: Dict[str, UploadTemplate] = {
    'members': UploadTemplate(
        entity='members',
        sheet_name='Members Template',
        columns=[
            'First Name', 'Last Name', 'Email', 'Phone', 'Staff ID', 'IPPIS Number',
            'Date of Birth (YYYY-MM-DD)', 'Gender (Male/Female)',
            'Marital Status (Single/Married/Divorced/Widowed)', 'Nationality',
            'State of Origin', 'LGA', 'Residential Address', 'City', 'State', 'Rank',
            'Department', 'Command State', 'Employment Date (YYYY-MM-DD)',
            'Years of Service', 'Membership Type (Regular/Associate)',
        ],
        sample_rows=[
            ['John', 'Doe', 'john.doe@frsc.gov.ng', '08012345678', 'FRSC/2024/001',
             'IPPIS001', '1990-01-15', 'Male', 'Single', 'Nigerian', 'Lagos', 'Ikeja',
             '123 Main Street, Victoria Island', 'Lagos', 'Lagos', 'Inspector',
             'Operations', 'Lagos', '2020-01-15', '4', 'Regular'],
            ['Jane', 'Smith', 'jane.smith@frsc.gov.ng', '08087654321', 'FRSC/2024/002',
             'IPPIS002', '1988-05-20', 'Female', 'Married', 'Nigerian', 'Abuja', 'Garki',
             '456 Independence Avenue', 'Abuja', 'FCT', 'Assistant Inspector',
             'Admin', 'FCT', '2019-03-10', '5', 'Regular'],
        ],
        column_widths=[15, 15, 25, 15, 15, 15, 20, 10, 15, 15, 15, 15, 30, 15, 15,
                       15, 15, 15, 20, 15, 20],
    ),
    'contributions': UploadTemplate(
        entity='contributions',
        sheet_name='Contributions Template',
        columns=['Member ID', 'Member Name', 'Amount', 'Month', 'Payment Method',
                 'Transaction Reference'],
        sample_rows=[
            ['FRSC/HMS/2024/001', 'John Doe', '50000', 'January 2025', 'Bank Transfer',
             'TRX123456789'],
            ['FRSC/HMS/2024/002', 'Jane Smith', '50000', 'January 2025', 'Paystack',
             'PAY987654321'],
        ],
        column_widths=[20, 20, 12, 15, 18, 25],
    ),
    'loan-repayments': UploadTemplate(
        entity='loan-repayments',
        sheet_name='Loan Repayments Template',
        columns=['Loan ID', 'Member ID', 'Member Name', 'Amount', 'Payment Date',
                 'Payment Method', 'Transaction Reference'],
        sample_rows=[
            ['LOAN-2024-001', 'FRSC/HMS/2024/001', 'John Doe', '100000', '2025-01-15',
             'Bank Transfer', 'TRX123456789'],
            ['LOAN-2024-002', 'FRSC/HMS/2024/002', 'Jane Smith', '150000', '2025-01-15',
             'Paystack', 'PAY987654321'],
        ],
        column_widths=[16, 20, 20, 12, 15, 18, 25],
    ),
}


class TemplateService:
    """Look up and render bulk-upload templates."""

    def __init__(self, templates: Optional[Dict[str, UploadTemplate]] = None):
        self.templates = templates if templates is not None else TEMPLATES

    def list_entities(self) -> List[str]:
        return sorted(self.templates)

    def get_template(self, entity: str) -> UploadTemplate:
        """
        Get the template for an entity.

        Raises:
            TemplateNotFoundError: If no template is defined for ``entity``
        """
        template = self.templates.get(entity)
        if template is None:
            logger.warning(f"Upload template requested for unknown entity: {entity}")
            raise TemplateNotFoundError(entity)
        return template

    def render_csv(self, entity: str) -> str:
        template = self.get_template(entity)
        return ExportService.array_to_csv(template.records, template.columns)

    def render_excel(self, entity: str) -> bytes:
        template = self.get_template(entity)
        return ExportService.array_to_excel(
            template.records,
            template.columns,
            sheet_name=template.sheet_name,
            column_widths=template.widths_by_column
        )
