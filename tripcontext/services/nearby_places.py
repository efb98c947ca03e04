import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from tripcontext.models.place_models import (
    ELIGIBLE_CONFIDENCE,
    NearbyPlace,
    NearbyPlaces,
    PlaceRecord,
    PlaceType,
)
from tripcontext.services.place_store import PlaceStore, PlaceStoreError
from tripcontext.services.region_taxonomy import RegionTaxonomy, get_taxonomy
from tripcontext.utils.accumulator import BoundedAccumulator
from tripcontext.utils.config import Settings, get_settings
from tripcontext.utils.geo import haversine_km
from tripcontext.utils.validators import CoordinateValidator

# Lodging is ranked with the rest but never recommended as "nearby"
CANDIDATE_TYPES = (PlaceType.FOOD.value, PlaceType.SIGHT.value, PlaceType.SHOP.value, PlaceType.STAY.value)

BUCKET_FOR_TYPE = {
    PlaceType.FOOD.value: "food",
    PlaceType.SIGHT.value: "sight",
    PlaceType.SHOP.value: "shop",
}


def _normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def is_same_place_name(a: Optional[str], b: Optional[str]) -> bool:
    """Loose name match: either name contains the other.

    Catches branch suffixes ("Ichiran Ramen" vs "Ichiran Ramen Hakata Branch")
    but also matches distinct places whose names nest.
    """
    left, right = _normalize_name(a), _normalize_name(b)
    if not left or not right:
        return False
    return left in right or right in left


class NearbyPlacesFinder:
    """Places around a coordinate, bucketed by category."""

    def __init__(
        self,
        store: PlaceStore,
        taxonomy: Optional[RegionTaxonomy] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.store = store
        self.taxonomy = taxonomy or get_taxonomy()
        self.radius_km = settings.NEARBY_RADIUS_KM
        self.limit = settings.NEARBY_LIMIT
        self.per_category = settings.NEARBY_PER_CATEGORY
        self.candidate_limit = settings.NEARBY_CANDIDATE_LIMIT
        self.logger = logging.getLogger(__name__)

    async def nearby(
        self,
        lat: Any,
        lon: Any,
        exclude_name: Optional[str] = None,
        exclude_id: Optional[Any] = None,
        radius_km: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> NearbyPlaces:
        """Never raises; invalid input or store errors yield empty buckets."""
        try:
            coords = CoordinateValidator.parse(lat, lon)
            if not coords:
                return NearbyPlaces()

            region = self.taxonomy.classify(*coords)
            if not region:
                return NearbyPlaces()

            try:
                candidates = await self.store.query_by_region(
                    [region],
                    types=CANDIDATE_TYPES,
                    confidence=ELIGIBLE_CONFIDENCE,
                    limit=self.candidate_limit,
                )
            except PlaceStoreError as e:
                self.logger.warning(f"[RAG] nearby query error: {e}")
                return NearbyPlaces()

            ranked = self.rank(
                coords,
                candidates,
                exclude_name=exclude_name,
                exclude_id=exclude_id,
                radius_km=self.radius_km if radius_km is None else radius_km,
                limit=self.limit if limit is None else limit,
            )
            return self.bucket(ranked)
        except Exception as e:
            self.logger.warning(f"[RAG] nearby lookup failed: {e}")
            return NearbyPlaces()

    def rank(
        self,
        origin: Tuple[float, float],
        candidates: Sequence[PlaceRecord],
        exclude_name: Optional[str] = None,
        exclude_id: Optional[Any] = None,
        radius_km: float = 1.5,
        limit: int = 20,
    ) -> List[NearbyPlace]:
        """Candidates within ``radius_km`` of ``origin``, closest first."""
        unique = BoundedAccumulator(len(candidates)).add(candidates)
        excluded_id = str(exclude_id) if exclude_id is not None else None

        scored: List[NearbyPlace] = []
        for place in unique:
            if excluded_id is not None and place.id == excluded_id:
                continue
            if exclude_name and is_same_place_name(place.name_ko, exclude_name):
                continue
            if not place.has_coordinates:
                continue
            distance = haversine_km(origin[0], origin[1], place.lat, place.lon)
            if distance <= radius_km:
                scored.append(NearbyPlace(**place.model_dump(), distance_km=distance))

        scored.sort(key=lambda p: p.distance_km)
        return scored[:max(0, limit)]

    def bucket(self, ranked: Sequence[NearbyPlace]) -> NearbyPlaces:
        buckets: Dict[str, List[NearbyPlace]] = {"food": [], "sight": [], "shop": []}
        for place in ranked:
            key = BUCKET_FOR_TYPE.get(place.type)
            if key and len(buckets[key]) < self.per_category:
                buckets[key].append(place)
        return NearbyPlaces(**buckets)
