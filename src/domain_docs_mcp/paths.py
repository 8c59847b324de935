"""Utilities for locating documents under the configured base directories safely."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

DOC_EXTENSIONS = (".md", ".markdown", ".txt", ".adoc")


@dataclass(frozen=True)
class BaseDirectory:
    """Container representing a document root."""

    name: str
    root: Path


@dataclass(frozen=True)
class DocumentRef:
    """Metadata of one document, addressed by its composite path."""

    path: str
    name: str
    size: int
    last_modified: str


class DocumentNotFoundError(LookupError):
    """Raised when a client path does not resolve under any base directory."""


def parse_base_directories(raw: str, cwd: Path | None = None) -> tuple[BaseDirectory, ...]:
    """Parse a comma separated list of paths into :class:`BaseDirectory` objects.

    Relative entries are resolved against *cwd* (the process working directory
    by default). Entries that do not exist are dropped.
    """

    working_dir = cwd if cwd is not None else Path.cwd()
    bases: list[BaseDirectory] = []
    seen: set[str] = set()
    for chunk in raw.split(","):
        candidate = chunk.strip()
        if not candidate:
            continue
        path = Path(candidate).expanduser()
        if not path.is_absolute():
            path = working_dir / path
        root = path.resolve(strict=False)
        if not root.is_dir():
            logger.warning("Dropping base directory %s: not an existing directory", root)
            continue
        name = root.name or str(root)
        if name in seen:
            logger.warning("Duplicate base directory name %r; earlier entries take precedence", name)
        seen.add(name)
        bases.append(BaseDirectory(name=name, root=root))

    logger.info("Scanning base directories: %s", [str(base.root) for base in bases])
    return tuple(bases)


def is_doc_file(name: str) -> bool:
    return name.lower().endswith(DOC_EXTENSIONS)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def _contained(candidate: Path, root: Path) -> bool:
    """Check *candidate* stays under *root* lexically and after following symlinks."""

    normalized = Path(os.path.normpath(candidate))
    if not _is_within(normalized, root):
        return False
    return _is_within(normalized.resolve(strict=False), root)


def walk_documents(base: BaseDirectory) -> Iterator[Path]:
    """Yield document files below *base*, skipping entries that cannot be read."""

    pending = [base.root]
    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as entries:
                children = sorted(entries, key=lambda entry: entry.name)
        except OSError as exc:
            logger.warning("Failed to walk %s: %s", directory, exc)
            continue

        subdirs: list[Path] = []
        for entry in children:
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(Path(entry.path))
                elif entry.is_file() and is_doc_file(entry.name):
                    path = Path(entry.path)
                    if entry.is_symlink() and not _contained(path, base.root):
                        logger.warning("Skipping %s: links outside %s", path, base.root)
                        continue
                    yield path
            except OSError as exc:
                logger.warning("Skipping %s: %s", entry.path, exc)
        pending.extend(reversed(subdirs))


@dataclass(frozen=True)
class DocumentRepository:
    """Enumerates documents and maps client paths to files and back."""

    bases: tuple[BaseDirectory, ...]

    @classmethod
    def from_roots(cls, roots: Iterable[Path]) -> DocumentRepository:
        bases = []
        for root in roots:
            resolved = Path(root).resolve(strict=False)
            bases.append(BaseDirectory(name=resolved.name or str(resolved), root=resolved))
        return cls(tuple(bases))

    def iter_document_files(self) -> Iterator[Path]:
        """Yield every document file of every base in configuration order."""

        for base in self.bases:
            if not base.root.is_dir():
                logger.warning("Base directory %s is no longer available", base.root)
                continue
            yield from walk_documents(base)

    def list_documents(self) -> list[DocumentRef]:
        refs: list[DocumentRef] = []
        for path in self.iter_document_files():
            try:
                stat = path.stat()
            except OSError as exc:
                logger.warning("Failed to stat %s: %s", path, exc)
                continue
            modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            refs.append(
                DocumentRef(
                    path=self.to_composite_path(path),
                    name=path.name,
                    size=stat.st_size,
                    last_modified=modified.isoformat(),
                )
            )
        refs.sort(key=lambda ref: ref.path)
        return refs

    def resolve(self, relative_path: str) -> Path | None:
        """Resolve a client supplied path to a document file.

        Plain relative paths are tried against every base in order; composite
        paths (``baseName/relative``) are then tried against their named base.
        Returns ``None`` when nothing matches.
        """

        for base in self.bases:
            found = self._resolve_in(base, relative_path)
            if found is not None:
                return found

        for base in self.bases:
            prefix = f"{base.name}/"
            if not relative_path.startswith(prefix):
                continue
            found = self._resolve_in(base, relative_path[len(prefix) :])
            if found is not None:
                return found
        return None

    def base_for(self, path: Path) -> BaseDirectory:
        """Return the first base directory containing *path*."""

        for base in self.bases:
            if _is_within(path, base.root):
                return base
        raise PermissionError(f"Path {path} is outside configured base directories")

    def to_composite_path(self, path: Path) -> str:
        base = self.base_for(path)
        relative = path.relative_to(base.root)
        return f"{base.name}/{relative.as_posix()}"

    @staticmethod
    def _resolve_in(base: BaseDirectory, relative_path: str) -> Path | None:
        try:
            candidate = Path(os.path.normpath(base.root / relative_path))
            if not _contained(candidate, base.root) or not candidate.is_file():
                return None
        except (OSError, ValueError) as exc:
            # e.g. embedded NUL bytes or names too long for the filesystem
            logger.debug("Rejected path %r: %s", relative_path, exc)
            return None
        return candidate
