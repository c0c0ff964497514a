# melbox/api/gallery/services.py
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List
from firebase_admin import firestore

from melbox.models.gallery import GalleryPhoto
from melbox.services.storage_service import StorageService
from melbox.utils.datetime_utils import DateTimeUtils

class GalleryService:
    """Photos from past parties ('gallery_photos'). Admins curate, everyone browses."""

    def __init__(self, db=None, storage_service: Optional[StorageService] = None):
        self.db = db or firestore.client()
        self.photos_ref = self.db.collection('gallery_photos')
        self.storage_service = storage_service

    def list_photos(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.photos_ref.order_by('created_at', direction=firestore.Query.DESCENDING)
        photos = [DateTimeUtils.from_firestore(doc.to_dict()) for doc in query.stream()]
        if category:
            photos = [p for p in photos if p.get('category') == category]
        return photos

    def create_photo(self, data: Dict[str, Any]) -> Dict[str, Any]:
        doc_ref = self.photos_ref.document()
        photo = GalleryPhoto(photo_id=doc_ref.id, **data)
        doc_ref.set(DateTimeUtils.for_firestore(asdict(photo)))
        logging.info(f"Gallery photo added: {photo.photo_id}")
        return asdict(photo)

    def delete_photo(self, photo_id: str) -> None:
        doc_ref = self.photos_ref.document(photo_id)
        doc = doc_ref.get()
        if not doc.exists:
            raise ValueError("Photo not found.")
        doc_ref.delete()

        image_url = doc.to_dict().get('image_url')
        if image_url and self.storage_service:
            try:
                self.storage_service.delete_by_url(image_url)
            except Exception as e:
                logging.error(f"Failed to delete gallery image (url: {image_url}): {e}")

    def adjust_likes(self, photo_id: str, delta: int) -> int:
        """Move the like counter by +1 or -1; it never goes below zero."""
        if delta not in (1, -1):
            raise ValueError("delta must be 1 or -1.")

        transaction = self.db.transaction()
        photo_ref = self.photos_ref.document(photo_id)

        @firestore.transactional
        def _adjust_in_transaction(transaction):
            doc = photo_ref.get(transaction=transaction)
            if not doc.exists:
                raise ValueError("Photo not found.")
            likes = max(int(doc.to_dict().get('likes') or 0) + delta, 0)
            transaction.update(photo_ref, {'likes': likes})
            return likes

        return _adjust_in_transaction(transaction)
