# melbox/api/parties/services.py
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List
from firebase_admin import firestore

from melbox.models.party import PartyPackage
from melbox.utils.datetime_utils import DateTimeUtils

class PartyPackageService:
    """CRUD for the 'party_packages' collection. Writes are admin-only at the route level."""

    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.packages_ref = self.db.collection('party_packages')

    def list_packages(self) -> List[Dict[str, Any]]:
        query = self.packages_ref.order_by('created_at', direction=firestore.Query.DESCENDING)
        return [DateTimeUtils.from_firestore(doc.to_dict()) for doc in query.stream()]

    def get_package(self, package_id: str) -> Optional[Dict[str, Any]]:
        doc = self.packages_ref.document(package_id).get()
        return DateTimeUtils.from_firestore(doc.to_dict()) if doc.exists else None

    def create_package(self, data: Dict[str, Any]) -> Dict[str, Any]:
        doc_ref = self.packages_ref.document()
        package = PartyPackage(package_id=doc_ref.id, **data)
        doc_ref.set(DateTimeUtils.for_firestore(asdict(package)))
        logging.info(f"Party package created: {package.package_id} ({package.name})")
        return asdict(package)

    def update_package(self, package_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc_ref = self.packages_ref.document(package_id)
        doc = doc_ref.get()
        if not doc.exists:
            raise ValueError("Package not found.")
        if data:
            doc_ref.update(DateTimeUtils.for_firestore(data))
        updated = doc.to_dict()
        updated.update(data)
        return DateTimeUtils.from_firestore(updated)

    def delete_package(self, package_id: str) -> None:
        doc_ref = self.packages_ref.document(package_id)
        if not doc_ref.get().exists:
            raise ValueError("Package not found.")
        doc_ref.delete()
        logging.info(f"Party package deleted: {package_id}")
