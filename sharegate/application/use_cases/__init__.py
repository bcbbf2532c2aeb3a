"""Use cases: upload ingestion and entry delivery."""

from sharegate.application.use_cases.delivery import DeliveryService
from sharegate.application.use_cases.ingestion import UploadResult, UploadService

__all__ = [
    "DeliveryService",
    "UploadResult",
    "UploadService",
]
