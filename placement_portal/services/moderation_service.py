"""
Job Moderation Service - admin review of job postings.

A posting moves draft -> open on approval, or to rejected; open postings
are archived by hand or once their application deadline has passed. Every
decision is announced to the recruiter who posted the job as an in-app
notification.
"""

import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import OperationFailure, PyMongoError

from placement_portal.core.errors import NotFoundError
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.schemas.schemas import JobStatus
from placement_portal.services.mongo_service import id_filter, serialize_doc, serialize_docs, utcnow
from placement_portal.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "No reason provided"


class JobModerationService:

    def __init__(self, notifications: Optional[NotificationService] = None):
        self.collection: Collection = get_collection(COLLECTIONS["jobs"])
        self.notifications = notifications or NotificationService()

    def _job(self, job_id: str) -> dict:
        job = serialize_doc(self.collection.find_one(id_filter(job_id)))
        if not job:
            raise NotFoundError("Job not found")
        return job

    def _moderate(self, job_id: str, changes: Dict[str, Any], title: str, body: str, **fields) -> dict:
        job = self._job(job_id)
        changes = {**changes, "updated_at": utcnow()}
        self.collection.update_one(id_filter(job_id), {"$set": changes})

        recruiter_id = job.get("recruiter_id")
        if recruiter_id:
            self.notifications.create_notification(
                recruiter_id, title, body.format(title=job.get("title") or "Your job", **fields),
                {"job_id": job["id"], "status": changes["status"]}
            )
        logger.info("Job %s -> %s", job_id, changes["status"])
        return {**job, **changes}

    def approve_job(self, job_id: str, admin_id: str) -> dict:
        return self._moderate(
            job_id,
            {
                "status": JobStatus.open.value,
                "is_active": True,
                "approved_at": utcnow(),
                "approved_by": admin_id,
            },
            "Job Approved",
            "{title} has been approved and is now live.",
        )

    def reject_job(self, job_id: str, admin_id: str, reason: Optional[str] = None) -> dict:
        reason = reason or DEFAULT_REJECTION_REASON
        return self._moderate(
            job_id,
            {
                "status": JobStatus.rejected.value,
                "is_active": False,
                "rejection_reason": reason,
                "rejected_at": utcnow(),
                "rejected_by": admin_id,
            },
            "Job Rejected",
            "{title} has been rejected by Admin. Reason: {reason}",
            reason=reason,
        )

    def archive_job(self, job_id: str, admin_id: str) -> dict:
        return self._moderate(
            job_id,
            {
                "status": JobStatus.archived.value,
                "is_active": False,
                "archived_at": utcnow(),
                "archived_by": admin_id,
            },
            "Job Archived",
            "{title} has been archived.",
        )

    def auto_archive_expired_jobs(self, admin_id: str, today: Optional[date] = None) -> Dict[str, int]:
        """
        Archive open jobs whose `application_deadline` (ISO date) is before today.

        Returns:
            {"total", "successful", "failed"}; one failure does not stop the rest.
        """
        today = today or date.today()
        expired = list(self.collection.find(
            {"status": JobStatus.open.value, "application_deadline": {"$lt": today.isoformat()}},
            {"_id": 1}
        ))

        successful = failed = 0
        for job in expired:
            try:
                self.archive_job(str(job["_id"]), admin_id)
                successful += 1
            except (PyMongoError, NotFoundError) as e:
                logger.error("Auto-archiving job %s failed: %s", job["_id"], e)
                failed += 1

        if expired:
            logger.info("Auto-archived %d of %d expired jobs", successful, len(expired))
        return {"total": len(expired), "successful": successful, "failed": failed}

    def search_jobs(self, term: str = "", status: Optional[str] = None, limit: int = 200) -> List[dict]:
        """Newest first; `term` matches title or company name, case-insensitively."""
        query: Dict[str, Any] = {}
        if status:
            query["status"] = status
        if term and term.strip():
            pattern = {"$regex": re.escape(term.strip()), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"company_name": pattern}]
        try:
            cursor = self.collection.find(query).sort("created_at", DESCENDING).limit(limit)
            return serialize_docs(cursor)
        except OperationFailure as e:
            logger.warning("Job search failed: %s", e)
            return []

    def get_job_analytics(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in JobStatus}
        for row in self.collection.aggregate([{"$group": {"_id": "$status", "count": {"$sum": 1}}}]):
            if row["_id"] in counts:
                counts[row["_id"]] = row["count"]
        return {
            "total": self.collection.count_documents({}),
            **counts,
            "pending_approval": counts[JobStatus.draft.value],
        }


def get_moderation_service() -> JobModerationService:
    return JobModerationService()
