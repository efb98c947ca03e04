import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account

from tripcontext.utils.config import Settings, get_settings

# Firestore accepts at most 30 values in an "in" filter
MAX_IN_FILTER_VALUES = 30


class FirestoreManager:
    """Lightweight wrapper around Firestore for the place collection."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(__name__)
        project_id = self.settings.FIRESTORE_PROJECT_ID or self.settings.GOOGLE_CLOUD_PROJECT
        try:
            # Prefer explicit Firestore credentials if provided (split-project support)
            credentials = None
            if self.settings.FIRESTORE_CREDENTIALS:
                credentials = service_account.Credentials.from_service_account_file(
                    self.settings.FIRESTORE_CREDENTIALS
                )
            database = self.settings.FIRESTORE_DATABASE_ID or None  # default DB if None
            # Use explicit creds or fall back to ADC
            self.client = firestore.Client(project=project_id, credentials=credentials, database=database)
            self.collection_name = self.settings.FIRESTORE_PLACES_COLLECTION or "rag_places"
            self.logger.info("Initialized Firestore client", extra={"project": project_id, "collection": self.collection_name, "database": database or "(default)"})
        except Exception:
            self.logger.exception("Failed to initialize Firestore client")
            raise

    def _collection(self):
        return self.client.collection(self.collection_name)

    def stream_by_region(
        self,
        regions: Sequence[str],
        fields: Sequence[str],
        page_size: Optional[int] = None,
    ) -> Iterator[Tuple[str, Dict[str, Any]]]:
        """Yield (document id, data) for every place in the given regions.

        Regions are queried in chunks. With ``page_size`` each chunk is read
        in limited pages, and the next page is only requested once the caller
        has consumed the previous one, so a caller that stops early never
        reads the rest of the region.
        """
        codes: List[str] = list(dict.fromkeys(regions))
        for start in range(0, len(codes), MAX_IN_FILTER_VALUES):
            chunk = codes[start:start + MAX_IN_FILTER_VALUES]
            query = self._collection().where(filter=FieldFilter("region", "in", chunk)).select(list(fields))
            if not page_size:
                for doc in query.stream():
                    yield doc.id, doc.to_dict() or {}
                continue

            last_doc = None
            while True:
                page = query.limit(page_size)
                if last_doc is not None:
                    page = page.start_after(last_doc)
                docs = list(page.stream())
                for doc in docs:
                    yield doc.id, doc.to_dict() or {}
                if len(docs) < page_size:
                    break
                last_doc = docs[-1]

    def stream_where_equal(self, field: str, value: Any, fields: Sequence[str], limit: int = 20) -> Iterator[Tuple[str, Dict[str, Any]]]:
        query = self._collection().where(filter=FieldFilter(field, "==", value)).select(list(fields)).limit(limit)
        for doc in query.stream():
            yield doc.id, doc.to_dict() or {}
