# melbox/api/videos/services.py
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List
from firebase_admin import firestore

from melbox.models.video import StoryVideo
from melbox.services.storage_service import StorageService
from melbox.utils.datetime_utils import DateTimeUtils

class VideoService:
    """Story Time videos ('videos'). Admins upload, everyone watches."""

    def __init__(self, db=None, storage_service: Optional[StorageService] = None):
        self.db = db or firestore.client()
        self.videos_ref = self.db.collection('videos')
        self.storage_service = storage_service

    def list_videos(self, tag: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.videos_ref.order_by('created_at', direction=firestore.Query.DESCENDING)
        videos = [DateTimeUtils.from_firestore(doc.to_dict()) for doc in query.stream()]
        if tag:
            videos = [v for v in videos if tag in (v.get('tags') or [])]
        return videos

    def get_video(self, video_id: str) -> Optional[Dict[str, Any]]:
        doc = self.videos_ref.document(video_id).get()
        return DateTimeUtils.from_firestore(doc.to_dict()) if doc.exists else None

    def create_video(self, data: Dict[str, Any]) -> Dict[str, Any]:
        doc_ref = self.videos_ref.document()
        video = StoryVideo(video_id=doc_ref.id, **data)
        doc_ref.set(DateTimeUtils.for_firestore(asdict(video)))
        logging.info(f"Story video added: {video.video_id} ({video.title})")
        return asdict(video)

    def delete_video(self, video_id: str) -> None:
        """Delete the document, then its video and thumbnail files. File cleanup failures are only logged."""
        doc_ref = self.videos_ref.document(video_id)
        doc = doc_ref.get()
        if not doc.exists:
            raise ValueError("Video not found.")
        doc_ref.delete()
        logging.info(f"Story video deleted: {video_id}")

        if not self.storage_service:
            return
        data = doc.to_dict()
        for url in (data.get('video_url'), data.get('thumbnail_url')):
            if not url:
                continue
            try:
                self.storage_service.delete_by_url(url)
            except Exception as e:
                logging.error(f"Failed to delete story video file (url: {url}): {e}")

    def record_view(self, video_id: str) -> int:
        """Count one view with a server-side increment and return the new total."""
        doc_ref = self.videos_ref.document(video_id)
        if not doc_ref.get().exists:
            raise ValueError("Video not found.")
        doc_ref.update({'views': firestore.Increment(1)})
        return int(doc_ref.get().to_dict().get('views') or 0)
