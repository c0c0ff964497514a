# melbox/api/reports/services.py
import logging
from dataclasses import asdict
from typing import Optional, Dict, Any, List
from firebase_admin import firestore

from melbox.models.report import SocialReport, ReportStatus
from melbox.utils.datetime_utils import DateTimeUtils

class ReportService:
    """
    Moderation queue for the social feed ('social_reports').
    Anyone signed in can report a post or comment; admins list and resolve reports.
    """
    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.reports_ref = self.db.collection('social_reports')
        self.posts_ref = self.db.collection('social_posts')

    @staticmethod
    def _to_response(data: Dict[str, Any]) -> Dict[str, Any]:
        data = DateTimeUtils.from_firestore(data)
        if isinstance(data.get('status'), ReportStatus):
            data['status'] = data['status'].value
        return data

    def create_report(self, reporter: Dict[str, Any], post_id: str, reason: str,
                      comment_id: Optional[str] = None) -> Dict[str, Any]:
        if not self.posts_ref.document(post_id).get().exists:
            raise ValueError("The reported post does not exist.")
        if comment_id and not self.posts_ref.document(post_id).collection('comments').document(comment_id).get().exists:
            raise ValueError("The reported comment does not exist.")

        doc_ref = self.reports_ref.document()
        report = SocialReport(
            report_id=doc_ref.id,
            post_id=post_id,
            comment_id=comment_id,
            reason=reason.strip(),
            reporter_id=reporter['user_id'],
            reporter_email=reporter.get('email')
        )
        data = asdict(report)
        data['status'] = report.status.value
        doc_ref.set(DateTimeUtils.for_firestore(data))
        logging.info(f"Report {report.report_id} filed on post {post_id} by {report.reporter_id}")
        return self._to_response(data)

    def list_reports(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Open reports first, newest first within each group."""
        query = self.reports_ref
        if status:
            query = query.where('status', '==', ReportStatus(status).value)
        reports = [self._to_response(doc.to_dict()) for doc in query.stream()]
        reports.sort(key=lambda r: r['created_at'], reverse=True)
        reports.sort(key=lambda r: r['status'] != ReportStatus.OPEN.value)
        return reports

    def resolve_report(self, report_id: str) -> Dict[str, Any]:
        doc_ref = self.reports_ref.document(report_id)
        doc = doc_ref.get()
        if not doc.exists:
            raise ValueError("Report not found.")
        update = {'status': ReportStatus.RESOLVED.value, 'resolved_at': DateTimeUtils.now()}
        doc_ref.update(update)
        data = doc.to_dict()
        data.update(update)
        return self._to_response(data)
