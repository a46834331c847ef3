"""Reporting services: spreadsheet exports"""

from .export_service import ExportService, XLSX_MEDIA_TYPE

__all__ = ["ExportService", "XLSX_MEDIA_TYPE"]
