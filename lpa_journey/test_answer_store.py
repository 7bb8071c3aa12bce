"""
Tests for the answer store and the document repository.
"""

import pytest

from lpa_journey.answer_store import LpaDocument, DocumentRepository
from lpa_journey.collection_manager import CollectionManager, ATTORNEYS
from lpa_journey.errors import NotFound
from lpa_journey.fixtures import make_attorney


class TestLpaDocument:
    def test_get_missing(self):
        document = LpaDocument('lpa-1', 'session-1')
        assert document.get('type') is None
        with pytest.raises(NotFound):
            document.get('type', strict=True)

    def test_set_and_delete_track_fields(self):
        document = LpaDocument('lpa-1', 'session-1')
        document.set('type', 'pfa')
        document.delete('restrictions')
        assert document.get('type') == 'pfa'
        assert document.touched_fields == {'type', 'restrictions'}

    def test_values_are_copied(self):
        document = LpaDocument('lpa-1', 'session-1')
        you = {'first_names': 'Jose'}
        document.set('you', you)
        you['first_names'] = 'Changed'
        assert document.get('you') == {'first_names': 'Jose'}

    def test_snapshot_is_independent(self):
        document = LpaDocument('lpa-1', 'session-1')
        snapshot = document.snapshot()
        snapshot.set('type', 'hw')
        assert document.get('type') is None

        document.adopt(snapshot)
        assert document.get('type') == 'hw'
        assert 'type' in document.touched_fields

    def test_adopt_other_document_rejected(self):
        document = LpaDocument('lpa-1', 'session-1')
        with pytest.raises(ValueError):
            document.adopt(LpaDocument('lpa-2', 'session-2'))


class TestDocumentRepository:
    def test_create_and_load(self, app):
        repository = DocumentRepository()
        created = repository.create('session-1')

        loaded = repository.load('session-1')
        assert loaded.id == created.id
        assert loaded.version == created.version
        assert repository.load('session-2') is None

    def test_save_bumps_version(self, app):
        repository = DocumentRepository()
        document = repository.create('session-1')
        version = document.version

        document.set('type', 'pfa')
        repository.save(document)

        assert document.version == version + 1
        assert document.touched_fields == set()
        assert repository.load('session-1').get('type') == 'pfa'

    def test_concurrent_saves_merge_touched_fields(self, app):
        repository = DocumentRepository()
        repository.create('session-1')
        first = repository.load('session-1')
        second = repository.load('session-1')

        first.set('type', 'pfa')
        repository.save(first)

        second.set('when_can_be_used', 'when-registered')
        repository.save(second)

        stored = repository.load('session-1')
        assert stored.get('type') == 'pfa'
        assert stored.get('when_can_be_used') == 'when-registered'

    def test_concurrent_collection_edits_keep_issued_ids(self, app):
        repository = DocumentRepository()
        repository.create('session-1')
        first = repository.load('session-1')
        second = repository.load('session-1')

        CollectionManager(first, ATTORNEYS, id_factory=lambda: 'a1').add(make_attorney('John'))
        repository.save(first)

        second.set('type', 'hw')
        repository.save(second)

        stored = repository.load('session-1')
        assert [r['id'] for r in stored.get_collection(ATTORNEYS)] == ['a1']
        assert 'a1' in stored.issued_ids

    def test_save_unknown_document(self, app):
        with pytest.raises(NotFound):
            DocumentRepository().save(LpaDocument('missing', 'session-1'))
