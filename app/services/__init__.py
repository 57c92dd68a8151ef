from app.services.classification_service import ClassificationService
from app.services.destination_resolver import DestinationResolver
from app.services.dispatch_service import DispatchService
from app.services.enrichment_service import EnrichmentService
from app.services.message_composer import MessageComposer

__all__ = [
    "ClassificationService",
    "DestinationResolver",
    "DispatchService",
    "EnrichmentService",
    "MessageComposer",
]
