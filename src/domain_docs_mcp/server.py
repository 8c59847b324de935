"""FastMCP server exposing domain documentation tools."""

from __future__ import annotations

import functools
import logging
import os
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, TypeVar, cast

from dotenv import load_dotenv
from fastmcp import FastMCP
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from .documents import DocumentReadError, read_document, slice_text
from .paths import (
    BaseDirectory,
    DocumentNotFoundError,
    DocumentRepository,
    parse_base_directories,
)
from .search import search_documents as search_corpus
from .search import search_sections as search_corpus_sections
from .sections import (
    SectionNotFoundError,
    extract_sections,
    find_section_by_title,
    section_extent,
)
from .security import HEALTH_PATH, build_security_middleware

TToolFunc = TypeVar("TToolFunc", bound=Callable[..., Any])

logger = logging.getLogger(__name__)

TRANSPORTS = ("http", "stdio")

load_dotenv()


class InvalidInputError(ValueError):
    """Raised when a required argument is missing or blank."""


@dataclass(slots=True)
class Settings:
    bases: tuple[BaseDirectory, ...]
    host: str
    port: int
    transport: str
    shared_secret: str | None
    log_level: str


def _failure(kind: str, exc: Exception) -> dict[str, Any]:
    return {"ok": False, "error": str(exc), "kind": kind}


def _reports_errors(method: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
    """Turn client and read errors into ``{"ok": False}`` payloads."""

    @functools.wraps(method)
    def wrapper(*args: Any, **kwargs: Any) -> dict[str, Any]:
        try:
            return method(*args, **kwargs)
        except InvalidInputError as exc:
            logger.debug("Rejected request: %s", exc)
            return _failure("invalid_input", exc)
        except (DocumentNotFoundError, SectionNotFoundError) as exc:
            logger.debug("Lookup failed: %s", exc)
            return _failure("not_found", exc)
        except DocumentReadError as exc:
            logger.error("Failed to read %s", exc.path, exc_info=exc)
            return _failure("read_error", exc)

    return wrapper


def _require(value: str | None, name: str, hint: str = "") -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{name} must be provided{hint}")
    return value


@dataclass(slots=True)
class DocsService:
    """Business logic behind the documentation tools."""

    repository: DocumentRepository

    def ping(self) -> str:
        return "pong"

    def list_documents(self) -> dict[str, Any]:
        documents = self.repository.list_documents()
        return {"ok": True, "documents": [asdict(ref) for ref in documents]}

    @_reports_errors
    def read_document(
        self, path: str | None, offset: int | None = None, limit: int | None = None
    ) -> dict[str, Any]:
        target = self._locate(path)
        window = slice_text(read_document(target), offset, limit)
        return {
            "ok": True,
            "path": self.repository.to_composite_path(target),
            "content": window.content,
            "total_length": window.total_length,
            "from": window.start,
            "to": window.end,
        }

    def search_documents(self, query: str | None, top_k: int | None = None) -> dict[str, Any]:
        hits = search_corpus(self.repository, query or "", top_k)
        return {"ok": True, "hits": [asdict(hit) for hit in hits]}

    @_reports_errors
    def list_sections(self, path: str | None) -> dict[str, Any]:
        target = self._locate(path)
        sections = extract_sections(read_document(target))
        return {
            "ok": True,
            "path": self.repository.to_composite_path(target),
            "sections": [asdict(section) for section in sections],
        }

    @_reports_errors
    def read_section(self, path: str | None, section_title: str | None) -> dict[str, Any]:
        _require(path, "path")
        title = _require(section_title, "section_title")
        target = self._locate(path)
        text = read_document(target)
        section = find_section_by_title(text, title)
        if section is None:
            raise SectionNotFoundError(f"Section not found: {title}")
        content = section_extent(text, section)
        return {
            "ok": True,
            "path": f"{self.repository.to_composite_path(target)}#{title}",
            "content": content,
            "total_length": len(content),
            "from": 0,
            "to": len(content),
        }

    def search_sections(self, query: str | None, top_k: int | None = None) -> dict[str, Any]:
        hits = search_corpus_sections(self.repository, query or "", top_k)
        return {"ok": True, "hits": [asdict(hit) for hit in hits]}

    def _locate(self, path: str | None) -> Path:
        relative = _require(path, "path", " (relative to a base directory)")
        target = self.repository.resolve(relative)
        if target is None:
            raise DocumentNotFoundError(
                f"Document not found under configured base directories: {relative}"
            )
        return target


def load_settings() -> Settings:
    """Load configuration from environment variables."""

    log_level = os.environ.get("LOG_LEVEL", "info").upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO))

    bases = parse_base_directories(os.environ.get("DOCS_PATHS", "specs"))

    host = os.environ.get("HOST", "0.0.0.0")  # noqa: S104 (intentional bind)
    port = int(os.environ.get("PORT", "8000"))
    transport = os.environ.get("MCP_TRANSPORT", "http").lower()
    if transport not in TRANSPORTS:
        raise ValueError(f"MCP_TRANSPORT must be one of {', '.join(TRANSPORTS)}: {transport!r}")
    shared_secret = os.environ.get("MCP_SHARED_SECRET") or None

    return Settings(
        bases=bases,
        host=host,
        port=port,
        transport=transport,
        shared_secret=shared_secret,
        log_level=log_level,
    )


def create_server(settings: Settings | None = None) -> tuple[FastMCP, list[Middleware]]:
    """Create a configured :class:`FastMCP` instance and its security middleware."""

    settings = settings or load_settings()
    server = FastMCP(
        "Domain Docs",
        instructions=(
            "Domain knowledge documents. Use listDocuments or searchDocuments to find "
            "a document, listSections to navigate it and readSection or readDocument "
            "to read it."
        ),
    )

    security_middleware = build_security_middleware(settings.shared_secret)

    service = DocsService(DocumentRepository(settings.bases))

    def tool(*args: Any, **kwargs: Any) -> Callable[[TToolFunc], TToolFunc]:
        decorator = server.tool(*args, **kwargs)
        return cast(Callable[[TToolFunc], TToolFunc], decorator)

    @tool(name="ping", description="Health check tool to verify MCP tool discovery.")
    async def ping() -> str:
        return service.ping()

    @tool(
        name="listDocuments",
        description="List available domain documents with metadata.",
    )
    async def list_documents() -> dict[str, Any]:
        return service.list_documents()

    @tool(
        name="readDocument",
        description=(
            "Read the content of a domain document, optionally a character window "
            "starting at offset (use listDocuments to discover paths)."
        ),
    )
    async def read_document_tool(
        path: str, offset: int | None = None, limit: int | None = None
    ) -> dict[str, Any]:
        return service.read_document(path, offset, limit)

    @tool(
        name="searchDocuments",
        description="Keyword search across domain documents. Returns top matches with brief snippets.",
    )
    async def search_documents(query: str, top_k: int | None = None) -> dict[str, Any]:
        return service.search_documents(query, top_k)

    @tool(
        name="listSections",
        description="List all sections/headings in a markdown document for navigation.",
    )
    async def list_sections(path: str) -> dict[str, Any]:
        return service.list_sections(path)

    @tool(
        name="readSection",
        description=(
            "Read a specific section from a document by section title "
            "(use listSections to discover section names)."
        ),
    )
    async def read_section(path: str, section_title: str) -> dict[str, Any]:
        return service.read_section(path, section_title)

    @tool(
        name="searchSections",
        description="Search within document sections for more precise results.",
    )
    async def search_sections(query: str, top_k: int | None = None) -> dict[str, Any]:
        return service.search_sections(query, top_k)

    @server.custom_route(HEALTH_PATH, methods=["GET"])
    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    return cast(FastMCP, server), security_middleware


def main() -> None:
    """Run the FastMCP server."""

    settings = load_settings()
    server, security_middleware = create_server(settings)
    if settings.transport == "stdio":
        server.run(transport="stdio")
        return
    server.run(
        transport="http",
        host=settings.host,
        port=settings.port,
        middleware=security_middleware,
    )


if __name__ == "__main__":
    main()
