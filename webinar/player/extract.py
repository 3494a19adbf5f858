"""Slide text extraction. The player only needs `page_count` and `extract(page)`."""
from __future__ import annotations

from pathlib import Path
from typing import Protocol, Union

import fitz  # PyMuPDF


class TextExtractor(Protocol):
    @property
    def page_count(self) -> int: ...

    def extract(self, page_number: int) -> str: ...


class PdfTextExtractor:
    """Reads text from a PDF held open for the lifetime of the player. Pages are 1-based."""

    def __init__(self, source: Union[str, Path, bytes]):
        if isinstance(source, (bytes, bytearray)):
            self._document = fitz.open(stream=bytes(source), filetype="pdf")
        else:
            self._document = fitz.open(str(source))

    @property
    def page_count(self) -> int:
        return self._document.page_count

    def extract(self, page_number: int) -> str:
        if page_number < 1 or page_number > self.page_count:
            raise IndexError(f"page {page_number} outside 1..{self.page_count}")
        text = self._document[page_number - 1].get_text("text")
        lines = [" ".join(line.split()) for line in text.splitlines()]
        return "\n".join(line for line in lines if line)

    def close(self) -> None:
        self._document.close()

    def __enter__(self) -> "PdfTextExtractor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
