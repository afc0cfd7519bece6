"""Offer, order confirmation and invoice PDFs."""

from .assembler import DocumentAssembler, RenderContext, RenderResult, generate_document_pdf
from .errors import DocumentError, MissingDataError, PersistenceError
from .models import DocumentKind
from .money import MoneySummary, compute_summary
from .service import DocumentService, GeneratedDocument

__all__ = [
    "DocumentAssembler",
    "DocumentError",
    "DocumentKind",
    "DocumentService",
    "GeneratedDocument",
    "MissingDataError",
    "MoneySummary",
    "PersistenceError",
    "RenderContext",
    "RenderResult",
    "compute_summary",
    "generate_document_pdf",
]
