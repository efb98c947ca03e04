import asyncio
import json

import pytest
from google.api_core import exceptions as gcp_exceptions

from tripcontext.services.place_store import (
    FirestorePlaceStore,
    InMemoryPlaceStore,
    PlaceStoreError,
    build_place_store,
)
from tripcontext.utils.config import Settings
from tripcontext.utils.firestore_manager import FirestoreManager
from tripcontext.utils.validators import CoordinateValidator
from tests.conftest import make_place


class FakeManager:
    """Stands in for FirestoreManager, serving rows from a list."""

    def __init__(self, rows, error=None):
        self.rows = rows
        self.error = error
        self.page_sizes = []

    def stream_by_region(self, regions, fields, page_size=None):
        self.page_sizes.append(page_size)
        if self.error:
            raise self.error
        for doc_id, data in self.rows:
            if data.get("region") in regions:
                yield doc_id, data

    def stream_where_equal(self, field, value, fields, limit=20):
        if self.error:
            raise self.error
        for doc_id, data in self.rows:
            if data.get(field) == value:
                yield doc_id, data


def test_in_memory_filters_and_limit(store):
    rows = asyncio.run(store.query_by_region(["fukuoka", "yufuin"], limit=3))
    assert [r.id for r in rows] == ["fuk-0", "fuk-1", "fuk-2"]

    assert asyncio.run(store.query_by_region([], limit=10)) == []
    assert asyncio.run(store.query_by_region(["fukuoka"], limit=0)) == []


def test_in_memory_tag_and_type_filters():
    store = InMemoryPlaceStore([
        make_place("a", "beppu", tags=["온천"]),
        make_place("b", "beppu", type="spot", tags=["온천"]),
        make_place("c", "beppu", type="spot"),
    ])
    rows = asyncio.run(store.query_by_region(["beppu"], types=["spot"], tags=["온천", "야경"], limit=10))
    assert [r.id for r in rows] == ["b"]


def test_in_memory_loads_seed_file(tmp_path):
    seed = tmp_path / "places.json"
    seed.write_text(json.dumps([
        {"id": 7, "region": "nara", "name_ko": "도다이지", "type": "spot", "tags": ["역사", "역사"]},
    ], ensure_ascii=False), encoding="utf-8")

    store = build_place_store(Settings(_env_file=None, PLACES_SEED_FILE=str(seed)))
    assert len(store) == 1
    record = asyncio.run(store.find_one("name_ko", "도다이지"))
    assert record.id == "7"
    assert record.tags == ["역사"]


def test_empty_store_without_configuration():
    store = build_place_store(Settings(_env_file=None))
    assert isinstance(store, InMemoryPlaceStore)
    assert len(store) == 0


def test_firestore_store_filters_while_streaming():
    rows = [
        ("1", {"region": "kobe", "name_ko": "거절", "type": "food", "confidence": "rejected"}),
        ("2", {"region": "kobe", "name_ko": "규카츠", "type": "food", "confidence": "verified"}),
        ("3", {"region": "kobe", "type": "food"}),
        ("4", {"region": "kobe", "name_ko": "하버랜드", "type": "spot"}),
    ]
    store = FirestorePlaceStore(FakeManager(rows))

    found = asyncio.run(store.query_by_region(["kobe"], limit=5))
    # the rejected row is filtered and the row without a name is skipped
    assert [r.id for r in found] == ["2", "4"]

    place = asyncio.run(store.find_one("name_ko", "하버랜드"))
    assert place.id == "4"
    assert asyncio.run(store.find_one("name_ko", "거절")) is None


def test_firestore_errors_become_place_store_errors():
    store = FirestorePlaceStore(FakeManager([], error=gcp_exceptions.ServiceUnavailable("down")))
    with pytest.raises(PlaceStoreError):
        asyncio.run(store.query_by_region(["kobe"], limit=5))
    with pytest.raises(PlaceStoreError):
        asyncio.run(store.find_one("address", "somewhere"))


@pytest.mark.parametrize("lat, lon, expected", [
    (33.59, 130.4, (33.59, 130.4)),
    ("33.59", " 130.4 ", (33.59, 130.4)),
    (True, 130.4, None),
    (91, 130.4, None),
    (33.59, -181, None),
    ("", 130.4, None),
    (float("inf"), 130.4, None),
])
def test_coordinate_parsing(lat, lon, expected):
    assert CoordinateValidator.parse(lat, lon) == expected


class FakeDoc:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return dict(self._data)


class FakeQuery:
    """Chainable query over an in-memory collection that counts documents read."""

    def __init__(self, docs, reads, page_limit=None, after=None):
        self.docs = docs
        self.reads = reads
        self.page_limit = page_limit
        self.after = after

    def where(self, filter):
        return FakeQuery([d for d in self.docs if d.to_dict().get(filter.field_path) in filter.value], self.reads)

    def select(self, fields):
        return self

    def limit(self, count):
        return FakeQuery(self.docs, self.reads, count, self.after)

    def start_after(self, doc):
        return FakeQuery(self.docs, self.reads, self.page_limit, doc)

    def stream(self):
        docs = self.docs
        if self.after is not None:
            docs = docs[docs.index(self.after) + 1:]
        if self.page_limit is not None:
            docs = docs[:self.page_limit]
        self.reads.append(len(docs))
        return iter(docs)


class FakeClient:
    def __init__(self, docs):
        self.docs = docs
        self.reads = []

    def collection(self, name):
        return FakeQuery(self.docs, self.reads)


def _manager_with(docs):
    manager = FirestoreManager.__new__(FirestoreManager)
    manager.client = FakeClient(docs)
    manager.collection_name = "rag_places"
    return manager


def _fukuoka_docs(count, rejected=()):
    return [
        FakeDoc(f"f-{i}", {
            "region": "fukuoka", "name_ko": f"가게 {i}", "type": "food",
            "confidence": "rejected" if i in rejected else "verified",
        })
        for i in range(count)
    ]


def test_firestore_store_reads_pages_until_limit_is_met():
    manager = _manager_with(_fukuoka_docs(50, rejected={0, 1, 2}))
    store = FirestorePlaceStore(manager)

    found = asyncio.run(store.query_by_region(["fukuoka"], limit=5))
    assert [r.id for r in found] == ["f-3", "f-4", "f-5", "f-6", "f-7"]
    # two pages of five documents, never the whole region
    assert manager.client.reads == [5, 5]


def test_firestore_store_passes_limit_as_page_size():
    manager = FakeManager([("1", {"region": "kobe", "name_ko": "규카츠", "type": "food"})])
    asyncio.run(FirestorePlaceStore(manager).query_by_region(["kobe"], limit=7))
    assert manager.page_sizes == [7]


def test_region_stream_pages_through_every_document():
    manager = _manager_with(_fukuoka_docs(12))
    ids = [doc_id for doc_id, _ in manager.stream_by_region(["fukuoka", "fukuoka"], ["region"], page_size=5)]
    assert ids == [f"f-{i}" for i in range(12)]
    assert manager.client.reads == [5, 5, 2]
