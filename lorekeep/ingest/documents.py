# lorekeep/ingest/documents.py
"""
Document snapshots as seen by the pipeline.

Documents are owned by the editor; the pipeline only reads them. A
snapshot carries the id, the current text and the last-modified time.
A last-modified time without a timezone is read as UTC.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union, runtime_checkable

DEFAULT_EXTENSIONS = (".txt", ".md")


@dataclass(frozen=True)
class Document:
    """Read-only view of one source document."""

    id: str
    text: str
    last_modified: datetime
    title: Optional[str] = None

    def __post_init__(self) -> None:
        # naive timestamps are taken as UTC so they compare with processed_at
        if self.last_modified.tzinfo is None:
            object.__setattr__(self, "last_modified", self.last_modified.replace(tzinfo=timezone.utc))

    @property
    def word_count(self) -> int:
        return len(self.text.split())


def load_documents(
    root: Union[str, Path],
    extensions: tuple = DEFAULT_EXTENSIONS,
) -> List[Document]:
    """
    Load text files under root as documents.

    The document id is the path relative to root (POSIX separators) and
    last_modified is the file's mtime in UTC.
    """
    base = Path(root)
    if not base.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    documents = []
    for path in sorted(base.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in extensions:
            continue
        documents.append(
            Document(
                id=path.relative_to(base).as_posix(),
                text=path.read_text(encoding="utf-8"),
                last_modified=datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc),
                title=path.stem,
            )
        )
    return documents


@runtime_checkable
class DocumentSource(Protocol):
    """Where the job pipeline reads a project's documents from."""

    def documents(self, project_id: str) -> List[Document]:
        ...


class StaticDocumentSource:
    """Documents registered per project in memory."""

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, Document]] = {}

    def put(self, project_id: str, documents: Iterable[Document]) -> None:
        bucket = self._documents.setdefault(project_id, {})
        for doc in documents:
            bucket[doc.id] = doc

    def documents(self, project_id: str) -> List[Document]:
        return list(self._documents.get(project_id, {}).values())


class DirectoryDocumentSource:
    """Each project is a sub-directory of root."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def documents(self, project_id: str) -> List[Document]:
        return load_documents(self.root / project_id)


__all__ = [
    "Document",
    "DEFAULT_EXTENSIONS",
    "load_documents",
    "DocumentSource",
    "StaticDocumentSource",
    "DirectoryDocumentSource",
]
