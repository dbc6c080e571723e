import logging
from typing import Optional

from google.api_core.exceptions import AlreadyExists
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from cropgen.models.schemas import ContentBundle, bundle_key

logger = logging.getLogger("cropgen.content_repo")


class FirestoreContentRepository:
    """One document per (date, crop, language) in the daily content collection."""

    def __init__(self, db: firestore.AsyncClient, collection: str = "daily_content"):
        self.db = db
        self.collection = collection

    def _doc(self, key: str):
        return self.db.collection(self.collection).document(key)

    async def get(self, day: str, crop: str, language: str) -> Optional[ContentBundle]:
        doc = await self._doc(bundle_key(day, crop, language)).get()
        return ContentBundle(**doc.to_dict()) if doc.exists else None

    async def create_if_absent(self, bundle: ContentBundle) -> ContentBundle:
        """Store `bundle` unless the key already exists; return whichever bundle is stored.

        `create()` fails on an existing document, so the first writer wins and
        later writers read the winner back.
        """
        try:
            await self._doc(bundle.key).create(bundle.model_dump())
            return bundle
        except AlreadyExists:
            logger.info("Bundle %s already stored by another request; re-reading", bundle.key)
            existing = await self.get(bundle.date, bundle.crop, bundle.language)
            return existing or bundle

    async def replace(self, bundle: ContentBundle) -> ContentBundle:
        await self._doc(bundle.key).set(bundle.model_dump())
        return bundle

    async def delete_except(self, day: str) -> int:
        deleted = 0
        query = self.db.collection(self.collection).where(filter=FieldFilter("date", "!=", day))
        async for doc in query.stream():
            await doc.reference.delete()
            deleted += 1
        return deleted

    async def delete_all(self) -> int:
        deleted = 0
        async for doc in self.db.collection(self.collection).stream():
            await doc.reference.delete()
            deleted += 1
        return deleted
