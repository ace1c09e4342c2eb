"""Document model building, pagination, watermarking and PDF output."""

from loan_engine.documents.builder import DocumentModelBuilder
from loan_engine.documents.layout import PaginatedRenderer
from loan_engine.documents.pdf import PdfWriter
from loan_engine.documents.primitives import Page
from loan_engine.documents.receipt import ReceiptFormatter
from loan_engine.documents.watermark import WatermarkOverlay

__all__ = [
    "DocumentModelBuilder",
    "Page",
    "PaginatedRenderer",
    "PdfWriter",
    "ReceiptFormatter",
    "WatermarkOverlay",
]
