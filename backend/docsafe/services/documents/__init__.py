from .filters import DocumentFilter, split_multi
from .listing import DocumentListingService, DocumentPage, document_listing_service
from .service import DocumentService, document_service, parse_tags, transition_status

__all__ = [
    "DocumentFilter",
    "DocumentListingService",
    "DocumentPage",
    "DocumentService",
    "document_listing_service",
    "document_service",
    "parse_tags",
    "split_multi",
    "transition_status",
]
