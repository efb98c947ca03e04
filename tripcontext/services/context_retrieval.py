"""
Place context retrieval for itinerary generation.

Resolves the trip's regions and preference tags, then fills a bounded,
deduplicated list of places from the store in up to three tiers:

1. hint regions (places the user explicitly mentioned), capped by the hint budget
2. the remaining regions, restricted to the preference tags
3. the remaining regions without a tag filter, to backfill the budget

Without tags, tier 2 is skipped. Every tier shares one accumulator, so the
global cap and the no-duplicate rule hold however many tiers contribute.
"""

import logging
from typing import List, Optional, Sequence

from tripcontext.models.place_models import ELIGIBLE_CONFIDENCE, PlaceRecord
from tripcontext.models.request_models import DestinationDescriptor
from tripcontext.models.response_models import RegionResolution, RetrievalResult
from tripcontext.services.destination_resolver import DestinationInput, DestinationResolver
from tripcontext.services.place_store import PlaceStore
from tripcontext.services.preference_tagger import PreferenceTagger
from tripcontext.utils.accumulator import BoundedAccumulator
from tripcontext.utils.config import Settings, get_settings
from tripcontext.utils.formatters import ContextFormatter


class ContextRetrievalEngine:

    def __init__(
        self,
        store: PlaceStore,
        resolver: Optional[DestinationResolver] = None,
        tagger: Optional[PreferenceTagger] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.store = store
        self.resolver = resolver or DestinationResolver()
        self.tagger = tagger or PreferenceTagger()
        self.max_places = settings.RAG_MAX_PLACES
        self.hint_budget = min(settings.RAG_HINT_BUDGET, settings.RAG_MAX_PLACES)
        self.overfetch_factor = max(1, settings.RAG_OVERFETCH_FACTOR)
        self.logger = logging.getLogger(__name__)

    async def retrieve(
        self,
        destinations: Optional[Sequence[DestinationInput]],
        preferences: Optional[str] = None,
        hint_text: Optional[str] = None,
        expand_to_area_groups: bool = False,
    ) -> RetrievalResult:
        """Build the place context block. Never raises; failures yield an empty result."""
        try:
            merged = self._merge_hint_destinations(destinations, hint_text)
            resolution = self.resolver.resolve(merged, hint_text, expand_to_area_groups)
            if not resolution.regions:
                return RetrievalResult()

            tags = self.tagger.tags_for(preferences)
            places = await self._collect(resolution, tags)
            if not places:
                return RetrievalResult()

            return RetrievalResult(
                text=ContextFormatter.format_context_text(places),
                count=len(places),
                records=places,
            )
        except Exception as e:
            self.logger.warning(f"[RAG] context retrieval failed: {e}")
            return RetrievalResult()

    def _merge_hint_destinations(
        self,
        destinations: Optional[Sequence[DestinationInput]],
        hint_text: Optional[str],
    ) -> List[DestinationDescriptor]:
        merged = self.resolver.descriptors(destinations)
        existing = {d.name.strip().lower() for d in merged}
        for name in self.resolver.hint_destinations(hint_text):
            key = name.strip().lower()
            if key and key not in existing:
                merged.append(DestinationDescriptor(name=name))
                existing.add(key)
        return merged

    async def _collect(self, resolution: RegionResolution, tags: List[str]) -> List[PlaceRecord]:
        collected = BoundedAccumulator(self.max_places)
        hint_regions = resolution.priority_regions
        other_regions = resolution.other_regions
        tag_filter = tags or None

        if hint_regions:
            await self._run_tier("hint", collected, hint_regions, tag_filter,
                                 fetch_limit=self.hint_budget, take=self.hint_budget)

        if other_regions and tags and not collected.is_full:
            await self._run_tier("tagged", collected, other_regions, tag_filter,
                                 fetch_limit=collected.remaining * self.overfetch_factor)

        if other_regions and not collected.is_full:
            await self._run_tier("backfill", collected, other_regions, None,
                                 fetch_limit=collected.remaining * self.overfetch_factor)

        return collected.items()[:self.max_places]

    async def _run_tier(
        self,
        tier: str,
        collected: BoundedAccumulator,
        regions: List[str],
        tags: Optional[List[str]],
        fetch_limit: int,
        take: Optional[int] = None,
    ) -> List[PlaceRecord]:
        try:
            rows = await self.store.query_by_region(
                regions, tags=tags, confidence=ELIGIBLE_CONFIDENCE, limit=fetch_limit
            )
        except Exception as e:
            # A failing tier contributes nothing; earlier tiers keep their places
            self.logger.warning(f"[RAG] {tier} query error: {e}")
            return []
        added = collected.add(rows, limit=take)
        self.logger.debug(f"[RAG] {tier} tier: fetched {len(rows)}, added {len(added)} ({len(collected)}/{collected.cap})")
        return added
