from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Tuple

from tripcontext.models.place_models import PlaceRecord

class RegionResolution(BaseModel):
    regions: List[str] = Field(default_factory=list)
    hint_regions: List[str] = Field(default_factory=list)

    @property
    def other_regions(self) -> List[str]:
        hint = set(self.hint_regions)
        return [r for r in self.regions if r not in hint]

    @property
    def priority_regions(self) -> List[str]:
        """Resolved regions that were also mentioned in the hint text."""
        hint = set(self.hint_regions)
        return [r for r in self.regions if r in hint]

class RetrievalResult(BaseModel):
    text: str = ""
    count: int = 0
    records: List[PlaceRecord] = Field(default_factory=list)

class ResolveRegionsResponse(BaseModel):
    regions: List[str]
    hint_regions: List[str]
    display_names: Dict[str, str]

class RegionInfoResponse(BaseModel):
    code: str
    display_name: str
    name_ja: Optional[str] = None
    center: Tuple[float, float]
    tier: int

class TagsResponse(BaseModel):
    tags: List[str]

class SuggestRegionsResponse(BaseModel):
    regions: List[str]
    display_names: Dict[str, str]
