"""
Place store access for the context service.

``PlaceStore`` is the query interface the retrieval engine and the nearby
finder depend on. Two implementations are provided:

- ``FirestorePlaceStore`` reads the ``rag_places`` collection
- ``InMemoryPlaceStore`` keeps records in a list (local runs, seed files, tests)

Every query failure surfaces as ``PlaceStoreError`` so callers can degrade a
single query without catching unrelated bugs.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from google.api_core import exceptions as gcp_exceptions
from pydantic import ValidationError

from tripcontext.models.place_models import ELIGIBLE_CONFIDENCE, PLACE_FIELDS, PlaceRecord
from tripcontext.utils.config import Settings, get_settings
from tripcontext.utils.firestore_manager import FirestoreManager

logger = logging.getLogger(__name__)


class PlaceStoreError(Exception):
    """Raised when the place store cannot answer a query."""


def _record_matches(
    record: PlaceRecord,
    types: Optional[Sequence[str]],
    tags: Optional[Sequence[str]],
    confidence: Optional[Sequence[Optional[str]]],
) -> bool:
    if types and record.type not in types:
        return False
    if tags and not set(record.tags).intersection(tags):
        return False
    if confidence is not None and record.confidence not in confidence:
        return False
    return True


class PlaceStore(ABC):

    @abstractmethod
    async def query_by_region(
        self,
        regions: Sequence[str],
        *,
        types: Optional[Sequence[str]] = None,
        tags: Optional[Sequence[str]] = None,
        confidence: Optional[Sequence[Optional[str]]] = ELIGIBLE_CONFIDENCE,
        limit: int,
    ) -> List[PlaceRecord]:
        """Places in ``regions`` matching every given filter, in store order, at most ``limit``."""

    @abstractmethod
    async def find_one(
        self,
        field: str,
        value: Any,
        *,
        confidence: Optional[Sequence[Optional[str]]] = ELIGIBLE_CONFIDENCE,
    ) -> Optional[PlaceRecord]:
        """First place whose ``field`` equals ``value``."""


def _records_from_rows(rows: Iterable[Tuple[str, Dict[str, Any]]]) -> Iterator[PlaceRecord]:
    for doc_id, data in rows:
        try:
            yield PlaceRecord(**{**data, "id": doc_id})
        except ValidationError as e:
            logger.warning(f"Skipping malformed place {doc_id}: {e.error_count()} validation errors")


def _take_matching(records: Iterable[PlaceRecord], types, tags, confidence, limit: int) -> List[PlaceRecord]:
    out: List[PlaceRecord] = []
    for record in records:
        if _record_matches(record, types, tags, confidence):
            out.append(record)
            if len(out) >= limit:
                break
    return out


class InMemoryPlaceStore(PlaceStore):
    """List-backed store; insertion order is the store order."""

    def __init__(self, places: Iterable[Union[PlaceRecord, Dict[str, Any]]] = ()):
        self._places: List[PlaceRecord] = []
        for place in places:
            self.add(place)

    @classmethod
    def from_json_file(cls, path: str) -> "InMemoryPlaceStore":
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
        store = cls(rows)
        logger.info(f"Loaded {len(store)} places from {path}")
        return store

    def add(self, place: Union[PlaceRecord, Dict[str, Any]]) -> PlaceRecord:
        record = place if isinstance(place, PlaceRecord) else PlaceRecord(**place)
        self._places.append(record)
        return record

    def __len__(self) -> int:
        return len(self._places)

    async def query_by_region(self, regions, *, types=None, tags=None, confidence=ELIGIBLE_CONFIDENCE, limit):
        if not regions or limit <= 0:
            return []
        wanted = set(regions)
        return _take_matching((p for p in self._places if p.region in wanted), types, tags, confidence, limit)

    async def find_one(self, field, value, *, confidence=ELIGIBLE_CONFIDENCE):
        for place in self._places:
            if getattr(place, field, None) == value and _record_matches(place, None, None, confidence):
                return place
        return None


class FirestorePlaceStore(PlaceStore):
    """Place store backed by a Firestore collection.

    The region filter runs on the server; type, tag and confidence filters
    are applied while streaming so ``limit`` counts matching rows only.
    Regions are read in pages of ``limit`` documents and reading stops once
    ``limit`` matching rows are collected.
    """

    def __init__(self, manager: FirestoreManager):
        self.manager = manager
        self.logger = logging.getLogger(__name__)

    def _query_sync(self, regions, types, tags, confidence, limit) -> List[PlaceRecord]:
        try:
            rows = self.manager.stream_by_region(regions, PLACE_FIELDS, page_size=limit)
            return _take_matching(_records_from_rows(rows), types, tags, confidence, limit)
        except gcp_exceptions.GoogleAPIError as e:
            raise PlaceStoreError(f"Firestore query failed for regions {list(regions)}: {e}") from e

    def _find_sync(self, field, value, confidence) -> Optional[PlaceRecord]:
        try:
            rows = self.manager.stream_where_equal(field, value, PLACE_FIELDS)
            found = _take_matching(_records_from_rows(rows), None, None, confidence, 1)
        except gcp_exceptions.GoogleAPIError as e:
            raise PlaceStoreError(f"Firestore lookup failed for {field}={value!r}: {e}") from e
        return found[0] if found else None

    async def query_by_region(self, regions, *, types=None, tags=None, confidence=ELIGIBLE_CONFIDENCE, limit):
        if not regions or limit <= 0:
            return []
        # Use sync client in thread pool to avoid blocking
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._query_sync, list(regions), types, tags, confidence, limit)

    async def find_one(self, field, value, *, confidence=ELIGIBLE_CONFIDENCE):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._find_sync, field, value, confidence)


def build_place_store(settings: Optional[Settings] = None) -> PlaceStore:
    """Create the place store selected by settings."""
    settings = settings or get_settings()
    if settings.USE_FIRESTORE:
        return FirestorePlaceStore(FirestoreManager(settings))
    if settings.PLACES_SEED_FILE:
        return InMemoryPlaceStore.from_json_file(settings.PLACES_SEED_FILE)
    logger.warning("No place store configured (USE_FIRESTORE=false, PLACES_SEED_FILE unset); using an empty store")
    return InMemoryPlaceStore()
