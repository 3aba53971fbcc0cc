from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Sequence


class DocumentStoreError(Exception):
    """The backing store could not complete a read or write."""


@dataclass(frozen=True)
class StoredDocument:
    collection_path: str
    doc_id: str
    data: dict

    @property
    def parent_id(self) -> Optional[str]:
        """Id of the document owning this sub-collection (``attendance/<id>/records``)."""
        parts = self.collection_path.split("/")
        return parts[-2] if len(parts) >= 2 else None


def collection_name_of(collection_path: str) -> str:
    return collection_path.rstrip("/").split("/")[-1]


def join_path(*segments: str) -> str:
    return "/".join(s.strip("/") for s in segments if s)


class DocumentStore(Protocol):
    """Keyed document storage with field-level merge writes.

    Collection paths are slash separated (``attendance/ECCM038/records``);
    a document id is unique within its collection path.
    """

    def get(self, collection_path: str, doc_id: str) -> Optional[dict]:
        raise NotImplementedError

    def set(self, collection_path: str, doc_id: str, fields: Mapping[str, Any], *, merge: bool = True) -> None:
        """Upsert. With ``merge`` only the given top-level fields are replaced."""

        raise NotImplementedError

    def update(self, collection_path: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        """Field update of an existing document; False when it does not exist."""

        raise NotImplementedError

    def create(self, collection_path: str, doc_id: str, fields: Mapping[str, Any]) -> bool:
        """Insert only if absent (compare-and-set on the key); False when it already exists."""

        raise NotImplementedError

    def add(self, collection_path: str, fields: Mapping[str, Any]) -> str:
        """Append a document with a generated id and return the id."""

        raise NotImplementedError

    def query_all(self, collection_name: str) -> Sequence[StoredDocument]:
        """Every document in every collection named ``collection_name``, unordered."""

        raise NotImplementedError
