from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from enum import Enum

class PlaceType(str, Enum):
    FOOD = "food"
    SIGHT = "spot"
    SHOP = "shop"
    STAY = "stay"

class Confidence(str, Enum):
    VERIFIED = "verified"
    AUTO_VERIFIED = "auto_verified"
    UNVERIFIED = "unverified"
    REJECTED = "rejected"

# Records with these confidence values (None = never reviewed) may be returned
ELIGIBLE_CONFIDENCE = (Confidence.VERIFIED.value, Confidence.AUTO_VERIFIED.value, None)

# Columns read from the place store
PLACE_FIELDS = (
    "region", "name_ko", "name_ja", "type", "description", "tags",
    "price_range", "opening_hours", "image_url", "google_place_id",
    "address", "lat", "lon", "confidence", "rating", "review_count",
)

class PlaceRecord(BaseModel):
    id: str
    region: str
    name_ko: str
    name_ja: Optional[str] = None
    type: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    price_range: Optional[str] = None
    opening_hours: Optional[str] = None
    image_url: Optional[str] = None
    google_place_id: Optional[str] = None
    address: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    confidence: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("tags", mode="before")
    @classmethod
    def _unique_tags(cls, v):
        if not v:
            return []
        seen = []
        for tag in v:
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

class NearbyPlace(PlaceRecord):
    distance_km: float

class NearbyPlaces(BaseModel):
    food: List[NearbyPlace] = Field(default_factory=list)
    sight: List[NearbyPlace] = Field(default_factory=list)
    shop: List[NearbyPlace] = Field(default_factory=list)

    def all_places(self) -> List[NearbyPlace]:
        return [*self.food, *self.sight, *self.shop]
