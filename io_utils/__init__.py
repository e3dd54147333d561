from .debug import DebugSink
from .logging_config import configure_logging
from .read import IMAGE, PDF, file_kind, iter_images, iter_pdf_pages, load_image

__all__ = [
    "DebugSink",
    "IMAGE",
    "PDF",
    "configure_logging",
    "file_kind",
    "iter_images",
    "iter_pdf_pages",
    "load_image",
]
