import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from pydantic import ValidationError

from tripcontext.models.request_models import DestinationDescriptor, ItineraryItem
from tripcontext.models.response_models import RegionResolution
from tripcontext.services.region_taxonomy import RegionTaxonomy, get_taxonomy
from tripcontext.utils.validators import CoordinateValidator

DestinationInput = Union[str, Dict[str, Any], DestinationDescriptor]


class _OrderedRegionSet:
    """Insertion-ordered set of region codes restricted to the taxonomy."""

    def __init__(self, taxonomy: RegionTaxonomy):
        self._taxonomy = taxonomy
        self._codes: Dict[str, None] = {}

    def add(self, code: Optional[str]) -> None:
        if self._taxonomy.has_region(code):
            self._codes.setdefault(code, None)

    def update(self, codes: Iterable[str]) -> None:
        for code in codes or ():
            self.add(code)

    def __contains__(self, code) -> bool:
        return code in self._codes

    def to_list(self) -> List[str]:
        return list(self._codes)


class DestinationResolver:
    """Maps trip destinations and free-text hints onto region codes."""

    def __init__(self, taxonomy: Optional[RegionTaxonomy] = None):
        self.taxonomy = taxonomy or get_taxonomy()
        self.logger = logging.getLogger(__name__)

    def resolve(
        self,
        destinations: Optional[Sequence[DestinationInput]],
        hint_text: Optional[str] = None,
        expand_to_area_groups: bool = False,
    ) -> RegionResolution:
        regions = _OrderedRegionSet(self.taxonomy)
        for descriptor in self.descriptors(destinations):
            regions.update(self._resolve_descriptor(descriptor))

        hint_regions = self.hint_regions(hint_text)
        regions.update(hint_regions)

        resolved = regions.to_list()
        if expand_to_area_groups:
            resolved = self.expand_area_groups(resolved)

        return RegionResolution(regions=resolved, hint_regions=hint_regions)

    def regions_for(
        self,
        destinations: Optional[Sequence[DestinationInput]],
        hint_text: Optional[str] = None,
        expand_to_area_groups: bool = False,
    ) -> List[str]:
        return self.resolve(destinations, hint_text, expand_to_area_groups).regions

    def descriptors(self, destinations: Optional[Sequence[DestinationInput]]) -> List[DestinationDescriptor]:
        """Coerce raw destinations, dropping entries that cannot be read."""
        out: List[DestinationDescriptor] = []
        for raw in destinations or []:
            try:
                out.append(DestinationDescriptor.coerce(raw))
            except ValidationError as e:
                self.logger.debug(f"Skipping unreadable destination {raw!r}: {e.error_count()} errors")
        return out

    def _resolve_descriptor(self, descriptor: DestinationDescriptor) -> Sequence[str]:
        name = (descriptor.name or "").strip()
        if not name:
            return ()

        # Area references dominate: "Kyushu, Japan" opens every Kyushu region
        area_regions = self.taxonomy.area_exact(name) or self.taxonomy.area_substring(name)
        if area_regions:
            return area_regions

        code = self.taxonomy.destination_to_region(name)
        if not code:
            coords = CoordinateValidator.parse(descriptor.lat, descriptor.lon)
            if coords:
                code = self.taxonomy.classify(*coords)
                if code:
                    self.logger.debug(f'"{name}" matched {code} by coordinates ({coords[0]}, {coords[1]})')
        return (code,) if code else ()

    def hint_destinations(self, hint_text: Optional[str]) -> List[str]:
        """Destination and area names mentioned in free text."""
        return self.taxonomy.scan_text(hint_text)

    def hint_regions(self, hint_text: Optional[str]) -> List[str]:
        """Regions mentioned in free text, never area-expanded."""
        regions = _OrderedRegionSet(self.taxonomy)
        for key in self.hint_destinations(hint_text):
            regions.update(self.taxonomy.regions_for_key(key))
        return regions.to_list()

    def expand_area_groups(self, regions: Sequence[str]) -> List[str]:
        """Add every member of each area group that already has a member in ``regions``."""
        expanded = _OrderedRegionSet(self.taxonomy)
        expanded.update(regions)
        seed = set(regions)
        for members in self.taxonomy.area_groups().values():
            if seed.intersection(members):
                expanded.update(members)
        return expanded.to_list()

    def regions_from_items(self, items: Optional[Sequence[Union[ItineraryItem, Dict[str, Any]]]]) -> List[str]:
        """Regions the coordinates of itinerary items fall into."""
        regions = _OrderedRegionSet(self.taxonomy)
        for item in self._items(items):
            lat = item.detail.get("lat")
            lon = item.detail.get("lon")
            if lat is None or lon is None:
                lat, lon = item.lat, item.lon
            coords = CoordinateValidator.parse(lat, lon)
            if coords:
                regions.add(self.taxonomy.classify(*coords))
        return regions.to_list()

    def _items(self, items) -> Iterator[ItineraryItem]:
        for raw in items or []:
            if isinstance(raw, ItineraryItem):
                yield raw
                continue
            if not isinstance(raw, dict):
                self.logger.debug(f"Skipping itinerary item of type {type(raw).__name__}")
                continue
            try:
                yield ItineraryItem.model_validate(raw)
            except ValidationError as e:
                self.logger.debug(f"Skipping unreadable itinerary item: {e.error_count()} errors")

    def suggest_missing_regions(
        self,
        items: Optional[Sequence[Union[ItineraryItem, Dict[str, Any]]]],
        destinations: Optional[Sequence[DestinationInput]],
    ) -> List[str]:
        """Regions visited by itinerary items but not covered by the trip destinations."""
        covered = set(self.regions_for(destinations))
        return [r for r in self.regions_from_items(items) if r not in covered]
