"""Application services for the music library pipeline."""

from songshelf.application.services.catalog_reconciler import CatalogReconciler
from songshelf.application.services.library_admin_service import LibraryAdminService
from songshelf.application.services.library_enrichment_service import LibraryEnrichmentService
from songshelf.application.services.library_scanner_service import (
    LibraryScannerService,
    ScanPassStats,
)
from songshelf.application.services.library_view_service import LibraryViewService
from songshelf.application.services.metadata_extractor import MetadataExtractor
from songshelf.application.services.sidecar_writer import SidecarWriter

__all__ = [
    "CatalogReconciler",
    "LibraryAdminService",
    "LibraryEnrichmentService",
    "LibraryScannerService",
    "LibraryViewService",
    "MetadataExtractor",
    "ScanPassStats",
    "SidecarWriter",
]
