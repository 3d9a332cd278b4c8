"""Unit tests for document-to-text conversion."""

import io

import pytest
from openpyxl import Workbook

from hybrid_rag.errors import ParseError
from hybrid_rag.ingestion.loader import supported_extensions, to_text


@pytest.mark.parametrize("filename", ["notes.txt", "README.MD", "data.json", "feed.xml"])
def test_plain_text_formats_are_decoded(filename: str) -> None:
    assert to_text(filename, "Grüße, Ada".encode()) == "Grüße, Ada"


def test_invalid_utf8_is_a_parse_error() -> None:
    with pytest.raises(ParseError, match="UTF-8"):
        to_text("notes.txt", b"\xff\xfe\xfa")


@pytest.mark.parametrize("filename", ["virus.exe", "archive.tar.gz", "no_extension", "old.xls"])
def test_unsupported_extension(filename: str) -> None:
    with pytest.raises(ParseError, match="Unsupported format"):
        to_text(filename, b"whatever")


def test_csv_rows_become_text() -> None:
    text = to_text("people.csv", b"name,role\nAda,Programmer\nCharles,Engineer\n")
    assert "name: Ada" in text
    assert "role: Engineer" in text


def test_html_markup_is_stripped() -> None:
    html = b"<html><head><title>T</title></head><body><p>Hello graph</p></body></html>"
    text = to_text("page.html", html)
    assert "Hello graph" in text
    assert "<p>" not in text


def test_spreadsheet_sheets_and_rows() -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "People"
    sheet.append(["name", "born"])
    sheet.append(["Ada", 1815])
    sheet.append(["Charles", 1791])
    buffer = io.BytesIO()
    workbook.save(buffer)

    text = to_text("people.xlsx", buffer.getvalue())

    assert text.splitlines() == [
        "--- SHEET: People ---",
        "name | born",
        "Ada | 1815",
        "Charles | 1791",
    ]


def test_corrupt_binary_is_a_parse_error() -> None:
    with pytest.raises(ParseError):
        to_text("broken.xlsx", b"definitely not a zip file")


def test_supported_extensions() -> None:
    extensions = supported_extensions()
    for ext in (".pdf", ".docx", ".xlsx", ".csv", ".html", ".txt", ".md"):
        assert ext in extensions
