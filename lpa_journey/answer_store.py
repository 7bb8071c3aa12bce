"""
Answer store for the in-progress LPA document.

A document holds scalar answers keyed by field name and named
sub-collections of records. It has no journey logic: the navigator and
the collection manager are its only writers.
"""

import copy
import uuid
from datetime import datetime
from typing import Dict, List, Any, Optional, Iterable

from lpa_journey import db
from lpa_journey.errors import NotFound
from lpa_journey.models import LpaRecord


class LpaDocument:
    """
    The mutable document being built by one session.

    Every write records which field or collection it touched so the
    repository can merge this document onto a newer stored version.
    """

    def __init__(self, id: str, session_id: str,
                 answers: Optional[Dict[str, Any]] = None,
                 collections: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 issued_ids: Optional[Iterable[str]] = None,
                 version: int = 0):
        self.id = id
        self.session_id = session_id
        self.answers = dict(answers or {})
        self.collections = {k: list(v) for k, v in (collections or {}).items()}
        self.issued_ids = set(issued_ids or ())
        self.version = version
        self.touched_fields = set()
        self.touched_collections = set()

    def __repr__(self):
        return f'<LpaDocument {self.id} v{self.version}>'

    # Scalar answers

    def get(self, field: str, strict: bool = False) -> Any:
        """
        Look up a scalar answer.

        Args:
            field: The answer's field name
            strict: Raise NotFound instead of returning None when absent

        Returns:
            The stored value, or None
        """
        if field not in self.answers:
            if strict:
                raise NotFound(f'No answer for field {field!r}')
            return None
        return copy.deepcopy(self.answers[field])

    def set(self, field: str, value: Any):
        self.answers[field] = copy.deepcopy(value)
        self.touched_fields.add(field)

    def delete(self, field: str):
        self.answers.pop(field, None)
        self.touched_fields.add(field)

    def has(self, field: str) -> bool:
        return field in self.answers

    # Sub-collections

    def get_collection(self, name: str) -> List[Dict[str, Any]]:
        """Return copies of the records in a sub-collection, in insertion order."""
        return copy.deepcopy(self.collections.get(name, []))

    def replace_collection(self, name: str, records: List[Dict[str, Any]]):
        self.collections[name] = copy.deepcopy(list(records))
        self.touched_collections.add(name)

    def issue_id(self, id: str):
        self.issued_ids.add(id)

    # All-or-nothing support

    def snapshot(self) -> 'LpaDocument':
        return copy.deepcopy(self)

    def adopt(self, other: 'LpaDocument'):
        """Take over the state of a snapshot that was mutated successfully."""
        if other.id != self.id:
            raise ValueError('Cannot adopt state from a different document')
        self.answers = other.answers
        self.collections = other.collections
        self.issued_ids = other.issued_ids
        self.touched_fields |= other.touched_fields
        self.touched_collections |= other.touched_collections

    def to_dict(self) -> Dict[str, Any]:
        """Read-only view for renderers."""
        return {
            'id': self.id,
            'answers': copy.deepcopy(self.answers),
            'collections': copy.deepcopy(self.collections),
            'version': self.version
        }


class DocumentRepository:
    """Loads and saves documents keyed by session id."""

    def load(self, session_id: str) -> Optional[LpaDocument]:
        record = LpaRecord.query.filter_by(session_id=session_id).first()
        if record is None:
            return None
        return self._to_document(record)

    def create(self, session_id: str) -> LpaDocument:
        record = LpaRecord(id=str(uuid.uuid4()), session_id=session_id)
        record.set_answers({})
        record.set_collections({})
        record.set_issued_ids([])
        db.session.add(record)
        db.session.commit()
        return self._to_document(record)

    def save(self, document: LpaDocument) -> LpaDocument:
        """
        Persist a document with optimistic merge.

        When the stored row has moved on since the document was loaded,
        only the fields and collections this document touched are written
        over the stored state; everything else keeps the stored value.

        Args:
            document: The document to persist

        Returns:
            The document, refreshed with the merged state and new version
        """
        record = db.session.get(LpaRecord, document.id)
        if record is None:
            raise NotFound(f'Document {document.id} does not exist')

        if record.version == document.version:
            answers = document.answers
            collections = document.collections
        else:
            answers = record.get_answers()
            for field in document.touched_fields:
                if field in document.answers:
                    answers[field] = document.answers[field]
                else:
                    answers.pop(field, None)

            collections = record.get_collections()
            for name in document.touched_collections:
                collections[name] = document.collections.get(name, [])

        issued_ids = set(record.get_issued_ids()) | document.issued_ids

        record.set_answers(answers)
        record.set_collections(collections)
        record.set_issued_ids(issued_ids)
        record.version = record.version + 1
        record.updated_at = datetime.utcnow()
        db.session.commit()

        document.answers = copy.deepcopy(answers)
        document.collections = copy.deepcopy(collections)
        document.issued_ids = issued_ids
        document.version = record.version
        document.touched_fields = set()
        document.touched_collections = set()
        return document

    def _to_document(self, record: LpaRecord) -> LpaDocument:
        return LpaDocument(
            id=record.id,
            session_id=record.session_id,
            answers=record.get_answers(),
            collections=record.get_collections(),
            issued_ids=record.get_issued_ids(),
            version=record.version
        )
