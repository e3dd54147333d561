from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

from PIL import Image, UnidentifiedImageError

from engines.errors import InputError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".tif", ".tiff", ".bmp", ".gif", ".webp"}
PDF_EXTENSIONS = {".pdf"}

IMAGE = "image"
PDF = "pdf"

# PDF pages are rasterized at 2x their 72 dpi point size.
PDF_ZOOM = 2.0


def _normalize_extensions(extensions: Iterable[str]) -> set[str]:
    return {ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions}


def iter_images(input_dir: Path, extensions: Iterable[str] | None = None) -> Iterator[Path]:
    """Yield image and PDF paths from a directory recursively, sorted.

    Args:
        input_dir: Directory containing images
        extensions: Optional set of file extensions to include

    Yields:
        Path objects for matching files
    """
    allowed = _normalize_extensions(extensions) if extensions is not None else IMAGE_EXTENSIONS | PDF_EXTENSIONS
    for path in sorted(input_dir.rglob("*")):
        if path.is_file() and path.suffix.lower() in allowed:
            yield path


def file_kind(path: Path) -> str:
    """Classify ``path`` as :data:`IMAGE` or :data:`PDF` by its extension.

    Raises:
        InputError: ``unknown_file_type`` without an extension,
            ``unsupported_file_type`` for anything else
    """
    suffix = path.suffix.lower()
    if not suffix:
        raise InputError("unknown_file_type", f"Could not determine file type: {path}")
    if suffix in PDF_EXTENSIONS:
        return PDF
    if suffix in IMAGE_EXTENSIONS:
        return IMAGE
    raise InputError("unsupported_file_type", f"File type not supported for OCR: {path}")


def load_image(path: Path) -> Image.Image:
    """Open and fully decode an image file.

    Raises:
        InputError: ``could_not_load_image`` if the file is missing or unreadable
    """
    try:
        with Image.open(path) as img:
            img.load()
            return img.copy()
    except (FileNotFoundError, UnidentifiedImageError, OSError) as exc:
        raise InputError("could_not_load_image", f"Could not load image file {path}: {exc}") from exc


def iter_pdf_pages(path: Path, zoom: float = PDF_ZOOM) -> Iterator[tuple[int, Image.Image | None]]:
    """Rasterize each page of a PDF document on a white background.

    Yields ``(page_number, image)`` with 1-based page numbers; ``image`` is
    ``None`` for a page that failed to render.

    Raises:
        InputError: ``could_not_load_pdf`` if the document cannot be opened
    """
    import pymupdf

    try:
        doc = pymupdf.open(path)
    except (pymupdf.FileDataError, RuntimeError, OSError) as exc:
        raise InputError("could_not_load_pdf", f"Could not load PDF document {path}: {exc}") from exc

    with doc:
        matrix = pymupdf.Matrix(zoom, zoom)
        for index in range(doc.page_count):
            try:
                pix = doc.load_page(index).get_pixmap(matrix=matrix, alpha=False)
                image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
            except (RuntimeError, ValueError) as exc:
                logger.warning("Could not render page %d of %s: %s", index + 1, path, exc)
                image = None
            yield index + 1, image
