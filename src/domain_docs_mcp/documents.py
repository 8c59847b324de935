"""Reading document text and serving partial reads."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class DocumentReadError(RuntimeError):
    """Raised when an existing document cannot be read."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(message)
        self.path = path


@dataclass(frozen=True)
class TextSlice:
    content: str
    total_length: int
    start: int
    end: int


def read_document(path: Path) -> str:
    """Read *path* as UTF-8 text."""

    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentReadError(path, f"Failed to read document {path.name}: {exc}") from exc


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def slice_text(text: str, offset: int | None = None, limit: int | None = None) -> TextSlice:
    """Return the ``[start, end)`` window of *text* selected by *offset* and *limit*.

    ``offset`` defaults to 0 and ``limit`` to the rest of the text. Both are
    clamped to the text bounds; a negative limit selects nothing.
    """

    total = len(text)
    start = 0 if offset is None else _clamp(offset, 0, total)
    end = total if limit is None else _clamp(start + max(0, limit), 0, total)
    return TextSlice(content=text[start:end], total_length=total, start=start, end=end)
