# melbox/services/storage_service.py
import uuid
import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import urlparse, unquote
from flask import Flask
from firebase_admin import storage

class StorageService:
    """
    General Firebase Storage service.
    Issues pre-signed upload URLs, publishes uploaded files and removes them again.
    """

    # upload_type -> folder, formatted with the uploader's uid
    PATH_MAP = {
        "social_image": "social/{user_id}",
        "gallery_photo": "gallery/{user_id}",
        "package_icon": "packages/{user_id}",
        "course_media": "courses/{user_id}",
        "story_video": "videos/{user_id}",
    }

    # upload types that may also carry video/* files
    VIDEO_UPLOAD_TYPES = frozenset({"course_media", "story_video"})

    def __init__(self, bucket=None):
        """
        The bucket is normally injected later through init_app.
        """
        self.bucket = bucket

    def init_app(self, app: Flask):
        """
        Called once from create_app to bind the Storage bucket.

        :param app: Flask application
        """
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET must be set in .env or the config class.")

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage initialized.")

    def _require_bucket(self):
        if not self.bucket:
            raise RuntimeError("StorageService is not initialized. Call init_app first.")

    def generate_upload_url(self, user_id: str, upload_type: str, filename: str, content_type: str) -> dict:
        """
        Create a pre-signed URL the client can PUT the file to directly,
        without streaming it through this server.

        :param user_id: uid of the caller (from the JWT)
        :param upload_type: one of PATH_MAP's keys, e.g. "social_image"
        :param filename: original file name (only the extension is kept)
        :param content_type: MIME type, e.g. "image/jpeg"
        :return: {"upload_url", "file_path"}
        """
        self._require_bucket()

        folder_template = self.PATH_MAP.get(upload_type)
        if not folder_template:
            raise ValueError(f"'{upload_type}' is not a valid upload type.")

        extension = filename.split('.')[-1] if '.' in filename else ''
        unique_filename = f"{uuid.uuid4()}.{extension}" if extension else str(uuid.uuid4())
        destination_blob_name = f"{folder_template.format(user_id=user_id)}/{unique_filename}"

        blob = self.bucket.blob(destination_blob_name)

        # valid for 15 minutes, PUT only
        upload_url = blob.generate_signed_url(
            version="v4",
            expiration=timedelta(minutes=15),
            method="PUT",
            content_type=content_type
        )

        return {
            "upload_url": upload_url,
            "file_path": destination_blob_name
        }

    def make_public_and_get_url(self, file_path: str) -> str:
        """
        Make an uploaded file public and return its URL.

        :param file_path: blob path returned by generate_upload_url
        :return: publicly reachable URL
        """
        self._require_bucket()

        blob = self.bucket.blob(file_path)

        if not blob.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            blob.make_public()
            return blob.public_url
        except Exception as e:
            logging.error(f"Failed to make file public: {e}", exc_info=True)
            raise

    def blob_path_from_url(self, url: str) -> Optional[str]:
        """
        'https://storage.googleapis.com/<bucket>/social/u1/a.jpg?X-Goog-...' -> 'social/u1/a.jpg'
        Returns None for URLs that do not point into our bucket.
        """
        self._require_bucket()
        parsed = urlparse(url)
        path = unquote(parsed.path).lstrip('/')
        prefix = f"{self.bucket.name}/"
        if path.startswith(prefix):
            return path[len(prefix):]
        # firebasestorage.googleapis.com/v0/b/<bucket>/o/<path>
        marker = f"b/{self.bucket.name}/o/"
        if marker in path:
            return path.split(marker, 1)[1]
        return None

    def delete_by_url(self, url: str) -> bool:
        """Delete the blob behind a public URL. Returns False when there was nothing to delete."""
        file_path = self.blob_path_from_url(url)
        if not file_path:
            return False
        blob = self.bucket.blob(file_path)
        if not blob.exists():
            return False
        blob.delete()
        logging.info(f"Deleted storage object: {file_path}")
        return True
