"""
Tests for the collection manager.

Record ids must stay stable and must never be handed out twice within
a document, even after the record that held them is removed.
"""

import pytest

from lpa_journey.answer_store import LpaDocument
from lpa_journey.collection_manager import CollectionManager, ATTORNEYS, REPLACEMENT_ATTORNEYS
from lpa_journey.errors import JourneyError, NotFound


def sequence(*ids):
    """An id factory returning the given ids in order."""
    remaining = list(ids)
    return lambda: remaining.pop(0)


@pytest.fixture
def document():
    return LpaDocument('lpa-1', 'session-1')


class TestAdd:
    def test_add_assigns_id_and_keeps_order(self, document):
        manager = CollectionManager(document, ATTORNEYS, id_factory=sequence('a1', 'a2'))

        assert manager.add({'first_names': 'John'}) == 'a1'
        assert manager.add({'first_names': 'Joan'}) == 'a2'

        assert [r['first_names'] for r in manager.all()] == ['John', 'Joan']
        assert manager.count() == 2

    def test_supplied_id_is_ignored(self, document):
        manager = CollectionManager(document, ATTORNEYS, id_factory=sequence('a1'))
        manager.add({'id': 'chosen', 'first_names': 'John'})
        assert manager.exists('a1')
        assert not manager.exists('chosen')

    def test_add_marks_collection_touched(self, document):
        CollectionManager(document, ATTORNEYS, id_factory=sequence('a1')).add({})
        assert ATTORNEYS in document.touched_collections

    def test_ids_never_reused_after_removal(self, document):
        manager = CollectionManager(document, ATTORNEYS, id_factory=sequence('a1', 'a1', 'a2'))
        manager.add({'first_names': 'John'})
        manager.remove('a1')

        assert manager.add({'first_names': 'Joan'}) == 'a2'

    def test_ids_unique_across_collections(self, document):
        CollectionManager(document, ATTORNEYS, id_factory=sequence('x1')).add({})
        replacements = CollectionManager(document, REPLACEMENT_ATTORNEYS,
                                         id_factory=sequence('x1', 'x2'))
        assert replacements.add({}) == 'x2'

    def test_repeating_id_factory_gives_up(self, document):
        manager = CollectionManager(document, ATTORNEYS, id_factory=lambda: 'a1')
        manager.add({'first_names': 'John'})

        with pytest.raises(JourneyError):
            manager.add({'first_names': 'Joan'})
        assert manager.count() == 1

    def test_default_ids_are_random(self, document):
        manager = CollectionManager(document, ATTORNEYS)
        ids = {manager.add({}) for _ in range(20)}
        assert len(ids) == 20


class TestGetAndAmend:
    def test_get_returns_copy(self, document):
        manager = CollectionManager(document, ATTORNEYS, id_factory=sequence('a1'))
        manager.add({'first_names': 'John'})

        record = manager.get('a1')
        record['first_names'] = 'Changed'

        assert manager.get('a1')['first_names'] == 'John'

    def test_get_unknown_raises(self, document):
        with pytest.raises(NotFound):
            CollectionManager(document, ATTORNEYS).get('missing')

    def test_amend_merges_fields(self, document):
        manager = CollectionManager(document, ATTORNEYS, id_factory=sequence('a1'))
        manager.add({'first_names': 'John', 'last_name': 'Smith'})

        updated = manager.amend('a1', {'last_name': 'Jones', 'id': 'other'})

        assert updated == {'id': 'a1', 'first_names': 'John', 'last_name': 'Jones'}

    def test_amend_unknown_raises(self, document):
        with pytest.raises(NotFound):
            CollectionManager(document, ATTORNEYS).amend('missing', {'last_name': 'X'})


class TestRemove:
    def test_remove_keeps_other_records(self, document):
        manager = CollectionManager(document, ATTORNEYS, id_factory=sequence('a1', 'a2', 'a3'))
        for name in ('John', 'Joan', 'Jane'):
            manager.add({'first_names': name})

        manager.remove('a2')

        assert [r['id'] for r in manager.all()] == ['a1', 'a3']

    def test_remove_unknown_raises(self, document):
        with pytest.raises(NotFound):
            CollectionManager(document, ATTORNEYS).remove('missing')

    def test_exists_handles_empty_id(self, document):
        manager = CollectionManager(document, ATTORNEYS)
        assert manager.exists(None) is False
        assert manager.exists('') is False
