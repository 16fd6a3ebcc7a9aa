# =============================================================================
# PDF Text Extraction — Docling Document Intelligence
# =============================================================================
#
# Converts uploaded PDF bytes into plain text for the report pipelines.
#
# DESIGN DECISION: Docling over PyPDF/pdfplumber because financial reports
# are table-heavy; Docling reconstructs table structure, and tables are
# rendered as markdown so figures stay aligned with their row labels.
#
# DESIGN DECISION: Bytes in, text out. Uploads are converted from an
# in-memory DocumentStream and never written to disk.
# =============================================================================

from __future__ import annotations

import logging
from io import BytesIO

from docling.datamodel.base_models import DocumentStream, InputFormat
from docling.datamodel.pipeline_options import PdfPipelineOptions
from docling.document_converter import DocumentConverter, PdfFormatOption
from docling_core.types.doc.labels import DocItemLabel

from finanalyzer.errors import ExtractionError

logger = logging.getLogger(__name__)

_TEXT_LABELS = {
    DocItemLabel.TITLE,
    DocItemLabel.SECTION_HEADER,
    DocItemLabel.TEXT,
    DocItemLabel.LIST_ITEM,
    DocItemLabel.CAPTION,
    DocItemLabel.FOOTNOTE,
}


# ---------------------------------------------------------------------------
# Docling Converter: Lazy Singleton
# ---------------------------------------------------------------------------
# Initialization loads layout/table models into memory, so one converter
# is reused for every upload.
# ---------------------------------------------------------------------------

_converter: DocumentConverter | None = None


def _get_converter() -> DocumentConverter:
    """Lazily initialize and cache the Docling DocumentConverter."""
    global _converter
    if _converter is None:
        logger.info(
            "Initializing Docling DocumentConverter "
            "(first use, may take a few seconds)..."
        )
        pipeline_options = PdfPipelineOptions()
        pipeline_options.do_table_structure = True
        pipeline_options.do_ocr = True

        _converter = DocumentConverter(
            format_options={
                InputFormat.PDF: PdfFormatOption(
                    pipeline_options=pipeline_options,
                ),
            }
        )
    return _converter


def extract_text(data: bytes, filename: str = "document.pdf") -> str:
    """
    Extract the text of a PDF, in reading order.

    Raises:
        ExtractionError: If Docling cannot convert the bytes, or the
            document contains no text.
    """
    if not data:
        raise ExtractionError("Uploaded document is empty.")

    converter = _get_converter()
    stream = DocumentStream(name=filename, stream=BytesIO(data))

    try:
        result = converter.convert(stream)
    except Exception as exc:
        raise ExtractionError(
            f"Failed to extract text from '{filename}': {exc}"
        ) from exc

    parts: list[str] = []
    for item, _level in result.document.iterate_items():
        label = getattr(item, "label", None)
        if label == DocItemLabel.TABLE:
            table_md = _table_to_markdown(item)
            if table_md:
                parts.append(table_md)
        elif label in _TEXT_LABELS:
            text = (getattr(item, "text", "") or "").strip()
            if text:
                parts.append(text)

    text = "\n".join(parts).strip()
    if not text:
        raise ExtractionError(
            f"Text extraction returned empty for '{filename}'."
        )

    logger.info(
        "Extracted %d characters (%d blocks) from '%s'",
        len(text), len(parts), filename,
    )
    return text


def _table_to_markdown(table_item: object) -> str:
    """
    Render a Docling TableItem as a markdown table.

    Falls back to the item's plain text if the DataFrame export fails.
    """
    try:
        if hasattr(table_item, "export_to_dataframe"):
            df = table_item.export_to_dataframe()
            return df.to_markdown(index=False)
    except Exception as exc:
        logger.warning("Table export to DataFrame failed: %s", exc)

    text = getattr(table_item, "text", "")
    return text.strip() if text else ""
