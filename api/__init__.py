"""
FastAPI application for tabular import and export.

This package contains the REST API for parsing bulk-upload files,
exporting records, and serving upload templates.
"""

__version__ = "1.0.0"
