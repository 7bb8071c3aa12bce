"""
CRUD over an ordered sub-collection of records in an LPA document.

Records are dicts carrying a stable 'id'. Ids are random, unique within
the document and never reused, so a stale link can never address a
different record after a removal.
"""

import copy
import secrets
import string
from typing import Dict, List, Any, Callable, Optional

from lpa_journey.answer_store import LpaDocument
from lpa_journey.errors import JourneyError, NotFound

ATTORNEYS = 'attorneys'
REPLACEMENT_ATTORNEYS = 'replacement_attorneys'
PEOPLE_TO_NOTIFY = 'people_to_notify'

ID_LENGTH = 8
ID_ALPHABET = string.ascii_letters + string.digits
# Give up rather than spin when an id factory keeps repeating itself
MAX_ID_ATTEMPTS = 100


def random_id(length: int = ID_LENGTH) -> str:
    return ''.join(secrets.choice(ID_ALPHABET) for _ in range(length))


class CollectionManager:
    """Manages one named sub-collection of a document."""

    def __init__(self, document: LpaDocument, name: str,
                 id_factory: Callable[[], str] = random_id):
        self.document = document
        self.name = name
        self._id_factory = id_factory

    def all(self) -> List[Dict[str, Any]]:
        return self.document.get_collection(self.name)

    def count(self) -> int:
        return len(self.document.collections.get(self.name, []))

    def exists(self, id: Optional[str]) -> bool:
        if not id:
            return False
        return any(r.get('id') == id for r in self.document.collections.get(self.name, []))

    def get(self, id: str) -> Dict[str, Any]:
        for record in self.document.collections.get(self.name, []):
            if record.get('id') == id:
                return copy.deepcopy(record)
        raise NotFound(f'No record {id!r} in {self.name}')

    def add(self, record: Dict[str, Any]) -> str:
        """
        Append a record with a fresh id.

        Args:
            record: Record fields; any 'id' supplied is ignored

        Returns:
            The new record's id
        """
        id = self._fresh_id()
        records = self.all()
        new_record = copy.deepcopy(record)
        new_record['id'] = id
        records.append(new_record)

        self.document.issue_id(id)
        self.document.replace_collection(self.name, records)
        return id

    def amend(self, id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge the given fields into an existing record.

        Unspecified fields are left untouched; the id cannot be changed.

        Raises:
            NotFound: if no record has this id
        """
        records = self.all()
        for record in records:
            if record.get('id') == id:
                for key, value in partial.items():
                    if key != 'id':
                        record[key] = copy.deepcopy(value)
                self.document.replace_collection(self.name, records)
                return copy.deepcopy(record)
        raise NotFound(f'No record {id!r} in {self.name}')

    def remove(self, id: str):
        """
        Delete a record. Remaining records keep their ids and order.

        Raises:
            NotFound: if no record has this id
        """
        records = self.all()
        remaining = [r for r in records if r.get('id') != id]
        if len(remaining) == len(records):
            raise NotFound(f'No record {id!r} in {self.name}')
        self.document.replace_collection(self.name, remaining)

    def _fresh_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            id = self._id_factory()
            if id not in self.document.issued_ids and not self.exists(id):
                return id
        raise JourneyError(f'Could not issue a new id in {self.name}')
