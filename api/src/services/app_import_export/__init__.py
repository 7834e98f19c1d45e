"""
App import/export

Serializes an application's versioned definition graph to a portable
snapshot and rebuilds snapshots as new applications.
"""

from src.services.app_import_export.exporter import AppExporter
from src.services.app_import_export.importer import AppImporter
from src.services.app_import_export.legacy import NormalizedSnapshot, normalize_snapshot
from src.services.app_import_export.service import AppImportExportService

__all__ = [
    "AppExporter",
    "AppImportExportService",
    "AppImporter",
    "NormalizedSnapshot",
    "normalize_snapshot",
]
