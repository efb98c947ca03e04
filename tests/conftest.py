import pytest

from tripcontext.models.place_models import PlaceRecord
from tripcontext.services.place_context_service import PlaceContextService
from tripcontext.services.place_store import InMemoryPlaceStore, PlaceStore, PlaceStoreError
from tripcontext.utils.config import Settings

KM_PER_DEGREE_LAT = 111.195

FUKUOKA_CENTER = (33.59, 130.4)


def make_place(place_id, region, name=None, type="food", tags=(), lat=None, lon=None,
               confidence="verified", description=None, **extra) -> PlaceRecord:
    return PlaceRecord(
        id=place_id,
        region=region,
        name_ko=name or f"{region} place {place_id}",
        type=type,
        description=description if description is not None else f"{region} {type}",
        tags=list(tags),
        lat=lat,
        lon=lon,
        confidence=confidence,
        **extra,
    )


def north_of(origin, km):
    """Point ``km`` kilometers due north of ``origin``."""
    return origin[0] + km / KM_PER_DEGREE_LAT, origin[1]


class FailingStore(PlaceStore):
    """Store whose every query fails like an unreachable backend."""

    def __init__(self, error=None):
        self.error = error or PlaceStoreError("backend unavailable")
        self.calls = 0

    async def query_by_region(self, regions, *, types=None, tags=None, confidence=None, limit):
        self.calls += 1
        raise self.error

    async def find_one(self, field, value, *, confidence=None):
        self.calls += 1
        raise self.error


class RecordingStore(PlaceStore):
    """Delegates to another store and records each query."""

    def __init__(self, inner, fail_when=None, error=None):
        self.inner = inner
        self.fail_when = fail_when
        self.error = error or PlaceStoreError("tier failed")
        self.queries = []

    async def query_by_region(self, regions, *, types=None, tags=None, confidence=None, limit):
        self.queries.append({"regions": list(regions), "types": types, "tags": tags,
                             "confidence": confidence, "limit": limit})
        if self.fail_when and self.fail_when(regions, tags):
            raise self.error
        return await self.inner.query_by_region(regions, types=types, tags=tags,
                                                confidence=confidence, limit=limit)

    async def find_one(self, field, value, *, confidence=None):
        return await self.inner.find_one(field, value, confidence=confidence)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def trip_places():
    """100 Fukuoka places followed by 5 Yufuin places, plus a few Nagasaki edge cases."""
    places = [make_place(f"fuk-{i}", "fukuoka") for i in range(100)]
    places += [make_place(f"yuf-{i}", "yufuin", name=f"유후인 가게 {i}") for i in range(5)]
    places += [
        make_place("nag-verified", "nagasaki", confidence="verified"),
        make_place("nag-auto", "nagasaki", confidence="auto_verified"),
        make_place("nag-unset", "nagasaki", confidence=None),
        make_place("nag-rejected", "nagasaki", confidence="rejected"),
        make_place("nag-unverified", "nagasaki", confidence="unverified"),
    ]
    return places


@pytest.fixture
def store(trip_places):
    return InMemoryPlaceStore(trip_places)


@pytest.fixture
def service(store, settings):
    return PlaceContextService(store, settings)
