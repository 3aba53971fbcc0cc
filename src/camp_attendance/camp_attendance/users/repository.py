from __future__ import annotations

from typing import Optional, Protocol

from ..documents.store import DocumentStore
from .model import SubjectProfile

PROFILES_COLLECTION = "nurses"


class ProfileRepository(Protocol):
    """Repository interface for SubjectProfile.

    Note (DIP): services depend on this interface, not on a concrete store.
    """

    def get(self, subject_id: str) -> Optional[SubjectProfile]:
        raise NotImplementedError

    def list_all(self) -> dict[str, SubjectProfile]:
        raise NotImplementedError

    def upsert(self, profile: SubjectProfile) -> None:
        raise NotImplementedError


class DocumentProfileRepository(ProfileRepository):
    def __init__(self, documents: DocumentStore):
        self._documents = documents

    def get(self, subject_id: str) -> Optional[SubjectProfile]:
        data = self._documents.get(PROFILES_COLLECTION, subject_id)
        if data is None:
            return None
        return SubjectProfile.from_document(subject_id, data)

    def list_all(self) -> dict[str, SubjectProfile]:
        return {
            doc.doc_id: SubjectProfile.from_document(doc.doc_id, doc.data)
            for doc in self._documents.query_all(PROFILES_COLLECTION)
        }

    def upsert(self, profile: SubjectProfile) -> None:
        self._documents.set(PROFILES_COLLECTION, profile.subject_id, profile.to_document(), merge=True)
