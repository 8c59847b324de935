"""Markdown heading parsing and section slicing."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Section:
    """A markdown heading and the 1-based line it starts on."""

    title: str
    level: int
    line_number: int


class SectionNotFoundError(LookupError):
    """Raised when no heading matches a requested section title."""


def split_lines(text: str) -> list[str]:
    """Split *text* on newlines, dropping trailing empty lines."""

    lines = text.split("\n")
    while lines and not lines[-1]:
        lines.pop()
    return lines


def parse_heading(line: str) -> tuple[int, str] | None:
    """Return ``(level, title)`` when *line* is an ATX heading."""

    stripped = line.strip()
    level = len(stripped) - len(stripped.lstrip("#"))
    if level == 0 or level == len(stripped):
        return None
    title = stripped[level:].strip()
    # closed headings: "## Title ##"
    if title.endswith("#"):
        title = title[:-1].strip()
    return level, title


def extract_sections(text: str) -> list[Section]:
    """Return the headings of *text* in document order."""

    sections: list[Section] = []
    for index, line in enumerate(split_lines(text)):
        heading = parse_heading(line)
        if heading is None:
            continue
        level, title = heading
        sections.append(Section(title=title, level=level, line_number=index + 1))
    return sections


def section_extent(text: str, section: Section) -> str:
    """Return the lines governed by *section*.

    The extent runs from the heading line up to, but excluding, the next
    heading of the same or a shallower level. Every returned line ends with a
    newline, including the last one.

    Only lines accepted by :func:`parse_heading` end a section, so a bare
    marker line such as ``##`` stays inside the body. Parsers that count any
    leading ``#`` run as a heading would stop there instead.
    """

    lines = split_lines(text)
    start = section.line_number - 1
    if start >= len(lines):
        return ""

    end = len(lines)
    for index in range(start + 1, len(lines)):
        heading = parse_heading(lines[index])
        if heading is not None and heading[0] <= section.level:
            end = index
            break

    return "".join(f"{line}\n" for line in lines[start:end])


def find_section_by_title(text: str, title: str) -> Section | None:
    """Find the first heading equal to, or starting with, *title* (case-insensitive)."""

    wanted = title.strip().lower()
    for section in extract_sections(text):
        candidate = section.title.strip().lower()
        if candidate == wanted or candidate.startswith(wanted):
            return section
    return None
