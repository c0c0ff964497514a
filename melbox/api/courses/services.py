# melbox/api/courses/services.py
import copy
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List, Set
from firebase_admin import firestore

from melbox.models.course import Course, CourseAccess
from melbox.utils.datetime_utils import DateTimeUtils

class CourseService:
    """
    Paid video courses ('courses') and who owns them ('users/{uid}/owned_courses').
    Writes are admin-only at the route level.
    """

    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.courses_ref = self.db.collection('courses')
        self.users_ref = self.db.collection('users')

    # --- catalogue ---

    def list_courses(self) -> List[Dict[str, Any]]:
        query = self.courses_ref.order_by('created_at', direction=firestore.Query.DESCENDING)
        return [DateTimeUtils.from_firestore(doc.to_dict()) for doc in query.stream()]

    def get_course(self, course_id: str) -> Optional[Dict[str, Any]]:
        doc = self.courses_ref.document(course_id).get()
        return DateTimeUtils.from_firestore(doc.to_dict()) if doc.exists else None

    def create_course(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(data)
        data.setdefault('lessons', self._count_lessons(data.get('sections') or []))
        doc_ref = self.courses_ref.document()
        course = Course(course_id=doc_ref.id, **data)
        doc_ref.set(DateTimeUtils.for_firestore(asdict(course)))
        logging.info(f"Course created: {course.course_id} ({course.title})")
        return asdict(course)

    def update_course(self, course_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc_ref = self.courses_ref.document(course_id)
        doc = doc_ref.get()
        if not doc.exists:
            raise ValueError("Course not found.")
        data = dict(data)
        if 'sections' in data and 'lessons' not in data:
            data['lessons'] = self._count_lessons(data['sections'])
        if data:
            doc_ref.update(DateTimeUtils.for_firestore(data))
        updated = doc.to_dict()
        updated.update(data)
        return DateTimeUtils.from_firestore(updated)

    def delete_course(self, course_id: str) -> None:
        doc_ref = self.courses_ref.document(course_id)
        if not doc_ref.get().exists:
            raise ValueError("Course not found.")
        doc_ref.delete()
        logging.info(f"Course deleted: {course_id}")

    @staticmethod
    def _count_lessons(sections: List[Dict[str, Any]]) -> int:
        return sum(len(section.get('lessons') or []) for section in sections)

    # --- ownership ---

    def _owned_ref(self, user_id: str):
        return self.users_ref.document(user_id).collection('owned_courses')

    def owned_course_ids(self, user_id: Optional[str]) -> Set[str]:
        if not user_id:
            return set()
        return {doc.id for doc in self._owned_ref(user_id).stream()}

    def list_owned_courses(self, user_id: str) -> List[Dict[str, Any]]:
        """The caller's library, most recently unlocked first. Deleted courses are skipped."""
        owned = [doc.to_dict() for doc in self._owned_ref(user_id).stream()]
        owned.sort(key=lambda access: access.get('purchased_at'), reverse=True)
        refs = [self.courses_ref.document(access['course_id']) for access in owned]
        return [DateTimeUtils.from_firestore(doc.to_dict()) for doc in self.db.get_all(refs) if doc.exists]

    def grant_access(self, course_id: str, user_id: str, granted_by: Optional[str] = None) -> bool:
        """
        Unlock every lesson of a course for a user and count them as a student.
        Returns False when the user already owned it.
        """
        transaction = self.db.transaction()
        course_ref = self.courses_ref.document(course_id)
        access_ref = self._owned_ref(user_id).document(course_id)

        @firestore.transactional
        def _grant_in_transaction(transaction):
            course_doc = course_ref.get(transaction=transaction)
            if not course_doc.exists:
                raise ValueError("Course not found.")
            if access_ref.get(transaction=transaction).exists:
                return False

            access = CourseAccess(course_id=course_id, granted_by=granted_by)
            transaction.set(access_ref, DateTimeUtils.for_firestore(asdict(access)))
            transaction.update(course_ref, {'students': firestore.Increment(1)})
            return True

        granted = _grant_in_transaction(transaction)
        if granted:
            logging.info(f"Course {course_id} unlocked for {user_id} by {granted_by}")
        return granted

    @staticmethod
    def present(course: Dict[str, Any], unlocked: bool) -> Dict[str, Any]:
        """
        The course as a given viewer may see it: lessons that are neither previews
        nor unlocked lose their video and download links.
        """
        view = copy.deepcopy(course)
        view['owned'] = unlocked
        for section in view.get('sections') or []:
            for lesson in section.get('lessons') or []:
                lesson['locked'] = not (unlocked or lesson.get('preview', False))
                if lesson['locked']:
                    lesson['video_url'] = None
                    lesson['download_url'] = None
        return view
