from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
import logging
from datetime import datetime
from typing import Optional

from tripcontext.models.place_models import NearbyPlaces, PlaceRecord
from tripcontext.models.request_models import (
    ContextRequest,
    ResolveRegionsRequest,
    SuggestRegionsRequest,
    TagsRequest,
)
from tripcontext.models.response_models import (
    RegionInfoResponse,
    ResolveRegionsResponse,
    RetrievalResult,
    SuggestRegionsResponse,
    TagsResponse,
)
from tripcontext.services.place_context_service import PlaceContextService
from tripcontext.services.place_store import build_place_store
from tripcontext.utils.config import get_settings, validate_settings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Trip Place Context API",
    description="Resolve trip regions and retrieve curated place context for itinerary generation",
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global service (initialized on startup or on first use)
place_context_service: Optional[PlaceContextService] = None

@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    global place_context_service

    try:
        if not validate_settings():
            logger.error("Invalid settings configuration")
            raise Exception("Invalid settings configuration")

        logger.info("Initializing place context service...")
        place_context_service = PlaceContextService(build_place_store(settings), settings)
        logger.info("Place context service initialized successfully")

    except Exception as e:
        logger.error(f"Failed to initialize services: {str(e)}")
        raise

# Dependency to get the service
def get_place_context_service() -> PlaceContextService:
    global place_context_service
    if place_context_service is None:
        place_context_service = PlaceContextService(build_place_store(settings), settings)
    return place_context_service

def _display_names(service: PlaceContextService, regions) -> dict:
    return {r: service.region_display_name(r) for r in regions}

@app.get("/")
async def root():
    return {"message": "Trip Place Context API", "version": settings.API_VERSION}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}

@app.post("/api/v1/regions/resolve", response_model=ResolveRegionsResponse)
async def resolve_regions(
    request: ResolveRegionsRequest,
    service: PlaceContextService = Depends(get_place_context_service)
):
    """Resolve trip destinations and hint text to region codes"""
    try:
        resolution = service.resolve(request.destinations, request.hint_text, request.expand_to_area_groups)
        return ResolveRegionsResponse(
            regions=resolution.regions,
            hint_regions=resolution.hint_regions,
            display_names=_display_names(service, resolution.regions),
        )
    except Exception as e:
        logger.error(f"Error resolving regions: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/api/v1/regions/suggest", response_model=SuggestRegionsResponse)
async def suggest_regions(
    request: SuggestRegionsRequest,
    service: PlaceContextService = Depends(get_place_context_service)
):
    """Regions visited by itinerary items that the trip destinations do not cover"""
    regions = service.suggest_missing_regions(request.items, request.destinations)
    return SuggestRegionsResponse(regions=regions, display_names=_display_names(service, regions))

@app.get("/api/v1/regions/{code}", response_model=RegionInfoResponse)
async def get_region(code: str, service: PlaceContextService = Depends(get_place_context_service)):
    region = service.taxonomy.get_region(code)
    if region is None:
        raise HTTPException(status_code=404, detail="Region not found")
    return RegionInfoResponse(
        code=region.code,
        display_name=service.region_display_name(region.code),
        name_ja=region.name_ja,
        center=region.center,
        tier=region.tier,
    )

@app.post("/api/v1/tags", response_model=TagsResponse)
async def preference_tags(request: TagsRequest, service: PlaceContextService = Depends(get_place_context_service)):
    return TagsResponse(tags=service.tags_from_preferences(request.preferences))

@app.post("/api/v1/context", response_model=RetrievalResult)
async def get_context(request: ContextRequest, service: PlaceContextService = Depends(get_place_context_service)):
    """Place context block for itinerary generation"""
    logger.info(f"Context request for {len(request.destinations)} destinations")
    return await service.get_context(
        request.destinations,
        preferences=request.preferences,
        hint_text=request.hint_text,
        expand_to_area_groups=request.expand_to_area_groups,
    )

@app.get("/api/v1/nearby", response_model=NearbyPlaces)
async def get_nearby(
    lat: Optional[float] = Query(None),
    lon: Optional[float] = Query(None),
    exclude_name: Optional[str] = None,
    exclude_id: Optional[str] = None,
    service: PlaceContextService = Depends(get_place_context_service)
):
    """Food, sights and shops close to a point"""
    return await service.get_nearby(lat, lon, exclude_name=exclude_name, exclude_id=exclude_id)

@app.get("/api/v1/places/lookup", response_model=PlaceRecord)
async def lookup_place(
    name: Optional[str] = None,
    address: Optional[str] = None,
    service: PlaceContextService = Depends(get_place_context_service)
):
    if not name and not address:
        raise HTTPException(status_code=400, detail="name or address is required")
    place = await service.find_place(name=name, address=address)
    if place is None:
        raise HTTPException(status_code=404, detail="Place not found")
    return place
