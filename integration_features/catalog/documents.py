"""Document catalog: the integration pages features are extracted from."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ValidationError

from integration_features.config.settings import CatalogConfig
from integration_features.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)


class Document(BaseModel):
    """A stored integration page with its raw block markup."""

    id: int
    title: str = ""
    slug: str = ""
    url: str = ""
    content: str = ""
    content_type: str = "integration"
    status: str = "publish"


class DocumentSource(Protocol):
    def get(self, document_id: int) -> Document | None: ...

    def list_documents(self, content_type: str, status: str = "publish") -> list[Document]: ...


def _sort_key(document: Document) -> tuple[str, int]:
    return (document.title.lower(), document.id)


class InMemoryDocumentRepository:
    """Document source backed by a dict."""

    def __init__(self, documents: list[Document] | None = None, permalink_base: str = "") -> None:
        self._permalink_base = permalink_base.rstrip("/")
        self._documents: dict[int, Document] = {}
        for document in documents or []:
            self.add(document)

    def _with_url(self, document: Document) -> Document:
        if document.url or not document.slug:
            return document
        return document.model_copy(update={"url": f"{self._permalink_base}/{document.slug}/"})

    def add(self, document: Document) -> Document:
        document = self._with_url(document)
        self._documents[document.id] = document
        return document

    def get(self, document_id: int) -> Document | None:
        return self._documents.get(document_id)

    def remove(self, document_id: int) -> bool:
        return self._documents.pop(document_id, None) is not None

    def list_documents(self, content_type: str, status: str = "publish") -> list[Document]:
        """Documents of one content type and status, ordered by title."""
        return sorted(
            (
                document
                for document in self._documents.values()
                if document.content_type == content_type and document.status == status
            ),
            key=_sort_key,
        )


class DocumentRepository(InMemoryDocumentRepository):
    """Document source persisted as one JSON file per document under ``<data_dir>/documents``."""

    def __init__(self, data_dir: Path, permalink_base: str = "") -> None:
        self._documents_dir = data_dir / "documents"
        self._documents_dir.mkdir(parents=True, exist_ok=True)
        self._snapshot: tuple[tuple[str, int, int], ...] | None = None
        super().__init__(permalink_base=permalink_base)
        self.hydrate_from_disk()

    @staticmethod
    def from_config(config: CatalogConfig) -> DocumentRepository:
        return DocumentRepository(data_dir=config.data_dir, permalink_base=config.permalink_base)

    @property
    def documents_dir(self) -> Path:
        return self._documents_dir

    def _scan(self) -> tuple[tuple[str, int, int], ...]:
        entries = []
        for path in sorted(self._documents_dir.glob("*.json")):
            try:
                stat = path.stat()
            except OSError:
                continue
            entries.append((path.name, stat.st_mtime_ns, stat.st_size))
        return tuple(entries)

    def hydrate_from_disk(self) -> None:
        """Reload every document file, replacing the in-memory view in one step."""
        snapshot = self._scan()
        documents: dict[int, Document] = {}
        for name, _, _ in snapshot:
            document = self._load(self._documents_dir / name)
            if document is not None:
                documents[document.id] = self._with_url(document)
        self._documents = documents
        self._snapshot = snapshot

    def refresh(self) -> None:
        """Reload from disk if any document file was added, removed or changed."""
        if self._scan() != self._snapshot:
            self.hydrate_from_disk()

    def get(self, document_id: int) -> Document | None:
        self.refresh()
        return super().get(document_id)

    def list_documents(self, content_type: str, status: str = "publish") -> list[Document]:
        self.refresh()
        return super().list_documents(content_type, status)

    def _load(self, path: Path) -> Document | None:
        try:
            return Document.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            emit_structured_error(
                logger,
                code=ErrorCode.DOCUMENT_LOAD_FAILED,
                message=str(exc),
                suppressed=True,
                details={"path": str(path)},
            )
            return None

    def add(self, document: Document) -> Document:
        document = super().add(document)
        self._persist(document)
        return document

    def remove(self, document_id: int) -> bool:
        removed = super().remove(document_id)
        path = self._path_for(document_id)
        if path.exists():
            path.unlink()
        return removed

    def _path_for(self, document_id: int) -> Path:
        return self._documents_dir / f"{document_id}.json"

    def _persist(self, document: Document) -> None:
        # Write to a temp file then rename so readers never see a partial document.
        path = self._path_for(document.id)
        temp_path = path.with_suffix(".tmp")
        try:
            temp_path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
            temp_path.replace(path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise
