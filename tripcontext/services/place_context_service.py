import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from tripcontext.models.place_models import ELIGIBLE_CONFIDENCE, NearbyPlaces, PlaceRecord
from tripcontext.models.request_models import ItineraryItem
from tripcontext.models.response_models import RegionResolution, RetrievalResult
from tripcontext.services.context_retrieval import ContextRetrievalEngine
from tripcontext.services.destination_resolver import DestinationInput, DestinationResolver
from tripcontext.services.nearby_places import NearbyPlacesFinder
from tripcontext.services.place_store import PlaceStore, PlaceStoreError
from tripcontext.services.preference_tagger import PreferenceTagger
from tripcontext.services.region_taxonomy import RegionTaxonomy
from tripcontext.utils.config import Settings, get_settings

ItemInput = Union[ItineraryItem, Dict[str, Any]]


class PlaceContextService:
    """Entry point used by itinerary generation and place detail views.

    Every method is best effort: bad input or store failures produce empty
    results instead of exceptions.
    """

    def __init__(
        self,
        store: PlaceStore,
        settings: Optional[Settings] = None,
        taxonomy: Optional[RegionTaxonomy] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.taxonomy = taxonomy or RegionTaxonomy(match_radius_km=self.settings.REGION_MATCH_RADIUS_KM)
        self.resolver = DestinationResolver(self.taxonomy)
        self.tagger = PreferenceTagger()
        self.context_engine = ContextRetrievalEngine(store, self.resolver, self.tagger, self.settings)
        self.nearby_finder = NearbyPlacesFinder(store, self.taxonomy, self.settings)
        self.logger = logging.getLogger(__name__)

    def resolve(
        self,
        destinations: Optional[Sequence[DestinationInput]],
        hint_text: Optional[str] = None,
        expand_to_area_groups: bool = False,
    ) -> RegionResolution:
        try:
            return self.resolver.resolve(destinations, hint_text, expand_to_area_groups)
        except Exception as e:
            self.logger.warning(f"Region resolution failed: {e}")
            return RegionResolution()

    def resolve_regions(
        self,
        destinations: Optional[Sequence[DestinationInput]],
        hint_text: Optional[str] = None,
        expand_to_area_groups: bool = False,
    ) -> List[str]:
        return self.resolve(destinations, hint_text, expand_to_area_groups).regions

    def tags_from_preferences(self, preferences: Optional[str]) -> List[str]:
        return self.tagger.tags_for(preferences)

    async def get_context(
        self,
        destinations: Optional[Sequence[DestinationInput]],
        preferences: Optional[str] = None,
        hint_text: Optional[str] = None,
        expand_to_area_groups: bool = False,
    ) -> RetrievalResult:
        return await self.context_engine.retrieve(destinations, preferences, hint_text, expand_to_area_groups)

    async def get_nearby(
        self,
        lat: Any,
        lon: Any,
        exclude_name: Optional[str] = None,
        exclude_id: Optional[Any] = None,
    ) -> NearbyPlaces:
        return await self.nearby_finder.nearby(lat, lon, exclude_name=exclude_name, exclude_id=exclude_id)

    def region_display_name(self, region: str) -> str:
        return self.taxonomy.display_name(region)

    def regions_from_items(self, items: Optional[Sequence[ItemInput]]) -> List[str]:
        try:
            return self.resolver.regions_from_items(items)
        except Exception as e:
            self.logger.warning(f"Could not read regions from itinerary items: {e}")
            return []

    def suggest_missing_regions(
        self,
        items: Optional[Sequence[ItemInput]],
        destinations: Optional[Sequence[DestinationInput]],
    ) -> List[str]:
        try:
            return self.resolver.suggest_missing_regions(items, destinations)
        except Exception as e:
            self.logger.warning(f"Region suggestion failed: {e}")
            return []

    async def find_place(self, name: Optional[str] = None, address: Optional[str] = None) -> Optional[PlaceRecord]:
        """Look a place up by exact Korean name, then by exact address."""
        for field, value in (("name_ko", name), ("address", address)):
            value = (value or "").strip()
            if not value:
                continue
            try:
                found = await self.store.find_one(field, value, confidence=ELIGIBLE_CONFIDENCE)
            except PlaceStoreError as e:
                self.logger.warning(f"Place lookup by {field} failed: {e}")
                continue
            if found:
                return found
        return None
