"""
PDF parsing and chunking.

Two extraction paths are supported:
- "text": reads the PDF text layer with PyPDF2 (fast, default).
- "vision": converts pages to images and uses a vision model to transcribe them.

The paths record page provenance differently ("loc.pageNumber" vs zero-based
"page"), which the retriever reconciles when resolving page numbers.
"""

import base64
import io
from dataclasses import dataclass, field
from pathlib import Path

from pdf2image import convert_from_path
from PIL import Image
from PyPDF2 import PdfReader

from ..config import rag_settings
from ..errors import IndexUnavailable
from ..logging_config import logger
from .llm import get_llm_client

DPI = 150
MAX_IMAGE_SIZE = (768, 768)


@dataclass(frozen=True)
class PageText:
    """Raw text of one document page plus its provenance metadata."""

    text: str
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Passage:
    """A chunk of page text; the unit stored in and retrieved from the index."""

    id: str
    text: str
    ordinal: int
    metadata: dict = field(default_factory=dict)


def _image_to_base64(image: Image.Image) -> str:
    """Convert PIL Image to base64 string."""
    image.thumbnail(MAX_IMAGE_SIZE, Image.Resampling.LANCZOS)

    if image.mode != "RGB":
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=85)
    buffer.seek(0)

    return base64.b64encode(buffer.read()).decode("utf-8")


def _extract_text_from_image(client, image_b64: str, page_num: int) -> str:
    """Extract text from a page image using vision model."""
    vision_model = rag_settings.openai_vision_model or rag_settings.openai_chat_model
    response = client.chat.completions.create(
        model=vision_model,
        messages=[
            {
                "role": "system",
                "content": (
                    "You are a document OCR assistant. Extract ALL text from the image. "
                    "Transcribe tables row by row and describe diagrams or photos briefly. "
                    "Preserve the document structure (headings, paragraphs, lists). "
                    "Output plain text only, no markdown formatting."
                ),
            },
            {
                "role": "user",
                "content": [
                    {
                        "type": "image_url",
                        "image_url": {
                            "url": f"data:image/jpeg;base64,{image_b64}",
                            "detail": "high",
                        },
                    },
                    {
                        "type": "text",
                        "text": f"Extract all text from page {page_num}.",
                    },
                ],
            },
        ],
        max_completion_tokens=4096,
    )

    return response.choices[0].message.content or ""


def _limit_pages(items: list, pdf_path: Path) -> list:
    max_pages = rag_settings.max_pages_per_pdf
    if max_pages > 0 and len(items) > max_pages:
        logger.warning(
            f"{pdf_path.name} has {len(items)} pages, limiting to {max_pages}"
        )
        return items[:max_pages]
    return items


def _extract_text_layer(pdf_path: Path) -> list[PageText]:
    reader = PdfReader(str(pdf_path))
    pages = []

    for i, page in enumerate(_limit_pages(list(reader.pages), pdf_path), 1):
        try:
            text = page.extract_text() or ""
        except Exception as e:
            logger.warning(f"  Page {i} failed: {e}")
            text = ""
        pages.append(
            PageText(
                text=text,
                metadata={"source": pdf_path.name, "loc": {"pageNumber": i}},
            )
        )

    return pages


def _extract_with_vision(pdf_path: Path) -> list[PageText]:
    try:
        images = convert_from_path(pdf_path, dpi=DPI)
    except Exception as e:
        logger.error(f"Failed to convert PDF to images: {e}")
        raise

    images = _limit_pages(images, pdf_path)
    logger.info(f"Processing {len(images)} pages with vision model...")

    client = get_llm_client()

    pages = []
    for i, image in enumerate(images):
        try:
            text = _extract_text_from_image(client, _image_to_base64(image), i + 1)
            logger.debug(f"  Page {i + 1}/{len(images)} extracted")
        except Exception as e:
            logger.warning(f"  Page {i + 1} failed: {e}")
            text = ""
        pages.append(PageText(text=text, metadata={"source": pdf_path.name, "page": i}))

    return pages


def extract_pages(pdf_path: Path, method: str | None = None) -> list[PageText]:
    """
    Extract per-page text from a PDF.

    Args:
        pdf_path: Path to the PDF file.
        method: "text" or "vision". Defaults to the configured parser.

    Returns:
        One PageText per page, in document order.
    """
    method = method or rag_settings.pdf_parser

    if not pdf_path.exists():
        raise IndexUnavailable(f"Document not found: {pdf_path}")

    logger.info(f"Parsing {pdf_path.name} ({method})...")

    if method == "vision":
        pages = _extract_with_vision(pdf_path)
    elif method == "text":
        pages = _extract_text_layer(pdf_path)
    else:
        raise ValueError(f"Unknown PDF parser: {method}")

    logger.info(f"Loaded {len(pages)} pages from {pdf_path.name}")
    return pages


def chunk_text(text: str, chunk_size: int = 1000, overlap: int = 200) -> list[str]:
    """
    Split text into overlapping chunks.

    Args:
        text: The text to chunk.
        chunk_size: Target size of each chunk in characters.
        overlap: Overlap between chunks.

    Returns:
        List of text chunks.
    """
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")

    if not text or len(text) <= chunk_size:
        return [text.strip()] if text and text.strip() else []

    chunks = []
    start = 0

    while start < len(text):
        end = start + chunk_size

        if end < len(text):
            para_break = text.rfind("\n\n", start, end)
            if para_break > start + chunk_size // 2:
                end = para_break + 2
            else:
                sentence_break = text.rfind(". ", start, end)
                if sentence_break > start + chunk_size // 2:
                    end = sentence_break + 2

        chunks.append(text[start:end].strip())

        if end >= len(text):
            break
        start = end - overlap

    return [c for c in chunks if c]


def split_pages(
    pages: list[PageText],
    chunk_size: int | None = None,
    overlap: int | None = None,
) -> list[Passage]:
    """
    Split pages into passages, preserving document order and page metadata.

    Args:
        pages: Extracted pages in document order.
        chunk_size: Window size in characters (default from settings).
        overlap: Characters shared by adjacent windows (default from settings).

    Returns:
        Passages numbered by their position in the document.
    """
    chunk_size = chunk_size or rag_settings.chunk_size
    overlap = rag_settings.chunk_overlap if overlap is None else overlap

    passages = []
    for page in pages:
        for text in chunk_text(page.text, chunk_size, overlap):
            ordinal = len(passages)
            passages.append(
                Passage(
                    id=f"chunk-{ordinal:05d}",
                    text=text,
                    ordinal=ordinal,
                    metadata=dict(page.metadata),
                )
            )

    return passages
