from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Google Cloud / Firestore Configuration
    GOOGLE_CLOUD_PROJECT: str = "your-project-id"
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None
    FIRESTORE_PROJECT_ID: Optional[str] = None
    FIRESTORE_CREDENTIALS: Optional[str] = None  # path to Firestore service account json
    FIRESTORE_DATABASE_ID: Optional[str] = None  # defaults to '(default)'
    USE_FIRESTORE: bool = False
    FIRESTORE_PLACES_COLLECTION: str = "rag_places"

    # Local place store (used when Firestore is disabled)
    PLACES_SEED_FILE: Optional[str] = None  # JSON array of place records

    # API Configuration
    API_VERSION: str = "1.0.0"
    DEBUG_MODE: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Context retrieval limits
    RAG_MAX_PLACES: int = 80
    RAG_HINT_BUDGET: int = 30
    RAG_OVERFETCH_FACTOR: int = 2

    # Region classification
    REGION_MATCH_RADIUS_KM: float = 50.0

    # Nearby places
    NEARBY_RADIUS_KM: float = 1.5
    NEARBY_LIMIT: int = 20
    NEARBY_PER_CATEGORY: int = 5
    NEARBY_CANDIDATE_LIMIT: int = 80

    model_config = {"env_file": ".env", "case_sensitive": True}

# Global settings instance
settings = Settings()

def get_settings() -> Settings:
    """Get the global settings instance"""
    return settings

def validate_settings() -> bool:
    """Validate that all required settings are configured"""
    problems = []

    if settings.USE_FIRESTORE:
        project = settings.FIRESTORE_PROJECT_ID or settings.GOOGLE_CLOUD_PROJECT
        if not project or project == "your-project-id":
            problems.append("GOOGLE_CLOUD_PROJECT (or FIRESTORE_PROJECT_ID)")

    if settings.RAG_HINT_BUDGET > settings.RAG_MAX_PLACES:
        problems.append("RAG_HINT_BUDGET must not exceed RAG_MAX_PLACES")

    if settings.RAG_OVERFETCH_FACTOR < 1:
        problems.append("RAG_OVERFETCH_FACTOR must be at least 1")

    if problems:
        print(f"Missing or invalid settings: {', '.join(problems)}")
        print("Please configure these settings in your .env file or environment variables")
        return False

    # If FIRESTORE_PROJECT_ID not set, fallback to GOOGLE_CLOUD_PROJECT
    if not settings.FIRESTORE_PROJECT_ID:
        settings.FIRESTORE_PROJECT_ID = settings.GOOGLE_CLOUD_PROJECT

    return True
