from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Dict, Any, Union

from tripcontext.utils.validators import CoordinateValidator

class DestinationDescriptor(BaseModel):
    name: str = ""
    lat: Optional[float] = None
    lon: Optional[float] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name_as_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("lat", "lon", mode="before")
    @classmethod
    def _drop_bad_coordinate(cls, v):
        # Unusable coordinates ("", "abc", NaN) only disable the coordinate fallback
        return CoordinateValidator.to_number(v)

    @classmethod
    def coerce(cls, value: Union[str, Dict[str, Any], "DestinationDescriptor", None]) -> "DestinationDescriptor":
        """Accept a plain name, a dict or a descriptor."""
        if isinstance(value, DestinationDescriptor):
            return value
        if isinstance(value, dict):
            return cls.model_validate(value)
        return cls(name=value)

def _coerce_destinations(v):
    if v is None:
        return []
    return [DestinationDescriptor.coerce(d) for d in v]

class ResolveRegionsRequest(BaseModel):
    destinations: List[DestinationDescriptor] = Field(default_factory=list)
    hint_text: Optional[str] = None
    expand_to_area_groups: bool = False

    normalize_destinations = field_validator("destinations", mode="before")(_coerce_destinations)

class TagsRequest(BaseModel):
    preferences: str = ""

class ContextRequest(BaseModel):
    destinations: List[DestinationDescriptor] = Field(default_factory=list)
    preferences: Optional[str] = None
    hint_text: Optional[str] = None
    expand_to_area_groups: bool = False

    normalize_destinations = field_validator("destinations", mode="before")(_coerce_destinations)

class ItineraryItem(BaseModel):
    """Schedule entry; coordinates live either on the item or in its detail block."""
    name: Optional[str] = None
    lat: Optional[Any] = None
    lon: Optional[Any] = None
    detail: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", mode="before")
    @classmethod
    def _name_as_text(cls, v):
        return v if v is None or isinstance(v, str) else str(v)

    @field_validator("detail", mode="before")
    @classmethod
    def _detail_as_dict(cls, v):
        return v if isinstance(v, dict) else {}

class SuggestRegionsRequest(BaseModel):
    items: List[ItineraryItem] = Field(default_factory=list)
    destinations: List[DestinationDescriptor] = Field(default_factory=list)

    normalize_destinations = field_validator("destinations", mode="before")(_coerce_destinations)
