"""Repository layer for database operations.

Repositories flush but never commit; the request-scoped session owns the
transaction.
"""

from repositories.catalog_repository import CatalogRepository
from repositories.certification_repository import CertificationRepository
from repositories.issuance_repository import IssuanceRepository
from repositories.progress_repository import ProgressRepository

__all__ = [
    "CatalogRepository",
    "CertificationRepository",
    "IssuanceRepository",
    "ProgressRepository",
]
