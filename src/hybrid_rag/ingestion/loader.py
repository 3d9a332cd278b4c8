"""Document conversion — uploaded bytes to plain text.

Dispatch is by file extension.  Binary formats go through the LangChain
community loaders (which need a file on disk, so the bytes are spilled to a
temporary file first); spreadsheets are read with ``openpyxl``.
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from langchain_community.document_loaders import (
    BSHTMLLoader,
    CSVLoader,
    Docx2txtLoader,
    PyPDFLoader,
)

from hybrid_rag.errors import ParseError

if TYPE_CHECKING:
    from langchain_core.document_loaders import BaseLoader

logger = logging.getLogger(__name__)

PLAIN_TEXT_EXTENSIONS = {".txt", ".md", ".json", ".xml"}


def to_text(filename: str, data: bytes) -> str:
    """Convert the uploaded file *data* to text.

    Parameters
    ----------
    filename:
        Original file name; only its extension is used.
    data:
        Raw file content.

    Raises
    ------
    ParseError
        Unsupported extension, or the content could not be decoded.
    """
    suffix = Path(filename).suffix.lower()
    converter = _CONVERTERS.get(suffix)
    if converter is None:
        raise ParseError(f"Unsupported format: {filename}")
    try:
        text = converter(data, suffix)
    except ParseError:
        raise
    except Exception as exc:
        raise ParseError(f"Failed to read {filename}: {exc}") from exc
    logger.info("Converted %s (%d bytes) to %d chars of text", filename, len(data), len(text))
    return text


def supported_extensions() -> list[str]:
    return sorted(_CONVERTERS)


# ── Converters ─────────────────────────────────────────────────────────


def _plain_text(data: bytes, suffix: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"File is not valid UTF-8: {exc}") from exc


def _with_loader(loader_factory: Callable[[str], BaseLoader]) -> Callable[[bytes, str], str]:
    """Wrap a path-based LangChain loader as a bytes converter."""

    def convert(data: bytes, suffix: str) -> str:
        fd, path = tempfile.mkstemp(suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            documents = loader_factory(path).load()
        finally:
            os.unlink(path)
        return "\n\n".join(doc.page_content for doc in documents)

    return convert


def _spreadsheet(data: bytes, suffix: str) -> str:
    from openpyxl import load_workbook

    workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    parts: list[str] = []
    try:
        for sheet in workbook.worksheets:
            lines = [f"--- SHEET: {sheet.title} ---"]
            for row in sheet.iter_rows(values_only=True):
                lines.append(" | ".join("" if cell is None else str(cell) for cell in row))
            parts.append("\n".join(lines))
    finally:
        workbook.close()
    return "\n\n".join(parts)


def _html_loader(path: str) -> BaseLoader:
    return BSHTMLLoader(path, open_encoding="utf-8", bs_kwargs={"features": "html.parser"})


_CONVERTERS: dict[str, Callable[[bytes, str], str]] = {
    ".pdf": _with_loader(PyPDFLoader),
    ".docx": _with_loader(Docx2txtLoader),
    ".csv": _with_loader(lambda path: CSVLoader(path, encoding="utf-8")),
    ".html": _with_loader(_html_loader),
    ".htm": _with_loader(_html_loader),
    ".xlsx": _spreadsheet,
    **{ext: _plain_text for ext in PLAIN_TEXT_EXTENSIONS},
}
