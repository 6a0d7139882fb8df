"""
Recruiter Service - admin management of recruiter accounts.

Recruiters live in the `users` profile collection (role "recruiter"). An
account is `active` unless an admin blocks it; blocked recruiters cannot
post jobs. Every status change is appended to `status_history` and the
recruiter is told about it through an in-app notification.
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import OperationFailure

from placement_portal.core.errors import NotFoundError, ValidationError
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.schemas.schemas import BlockType, RecruiterStatus, UserRole
from placement_portal.services.mongo_service import serialize_doc, serialize_docs, utcnow
from placement_portal.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

CENTERS = ("Lucknow", "Pune", "Bangalore", "Delhi")
SCHOOLS = ("SOT", "SOH", "SOM")

SEARCH_FIELDS = ("email", "profile.name", "profile.company", "profile.location")


def _field(doc: Dict[str, Any], path: str) -> Any:
    for part in path.split("."):
        if not isinstance(doc, dict):
            return None
        doc = doc.get(part)
    return doc


class RecruiterService:

    def __init__(self, notifications: Optional[NotificationService] = None):
        self.users: Collection = get_collection(COLLECTIONS["users"])
        self.jobs: Collection = get_collection(COLLECTIONS["jobs"])
        self.notifications = notifications or NotificationService()

    def get_recruiter(self, recruiter_id: str) -> dict:
        recruiter = serialize_doc(
            self.users.find_one({"_id": recruiter_id, "role": UserRole.recruiter.value})
        )
        if not recruiter:
            raise NotFoundError("Recruiter not found")
        recruiter.setdefault("status", RecruiterStatus.active.value)
        return recruiter

    def is_blocked(self, recruiter_id: str) -> bool:
        doc = self.users.find_one({"_id": recruiter_id}, {"status": 1})
        return bool(doc) and doc.get("status") == RecruiterStatus.blocked.value

    def _set_status(self, recruiter_id: str, status: str, admin_id: str,
                    extra: Optional[Dict[str, Any]] = None, unset: Optional[List[str]] = None) -> None:
        now = utcnow()
        update: Dict[str, Any] = {
            "$set": {"status": status, "updated_by": admin_id, "updated_at": now, **(extra or {})},
            "$push": {"status_history": {"status": status, "changed_by": admin_id, "changed_at": now}},
        }
        if unset:
            update["$unset"] = {field: "" for field in unset}
        self.users.update_one({"_id": recruiter_id}, update)

    def block_unblock_recruiter(self, recruiter_id: str, data: Dict[str, Any], admin_id: str) -> Dict[str, Any]:
        """
        Block or unblock a recruiter account.

        `data` keys: is_unblocking, block_type ("permanent" or "temporary"),
        end_date, end_time (temporary blocks only), reason, notes.

        Raises:
            NotFoundError: no such recruiter.
            ValidationError: a temporary block without an end date.
        """
        recruiter = self.get_recruiter(recruiter_id)

        if data.get("is_unblocking"):
            self._set_status(recruiter_id, RecruiterStatus.active.value, admin_id, unset=["block_info"])
            self.notifications.create_notification(
                recruiter_id, "Account Unblocked",
                "Your recruiter account has been unblocked and you can now post jobs.",
                {"action": "unblocked"}
            )
            logger.info("Recruiter %s unblocked by %s", recruiter_id, admin_id)
            return {"success": True, "action": "unblocked", "recruiter": self.get_recruiter(recruiter_id)}

        block_type = BlockType(data.get("block_type") or BlockType.permanent.value)
        reason = data.get("reason") or "No reason provided"
        block_info: Dict[str, Any] = {
            "type": block_type.value,
            "reason": reason,
            "notes": data.get("notes") or "",
            "blocked_at": utcnow(),
            "blocked_by": admin_id,
        }
        if block_type == BlockType.temporary:
            if not data.get("end_date"):
                raise ValidationError("A temporary block needs an end date")
            block_info["end_date"] = data["end_date"]
            block_info["end_time"] = data.get("end_time") or "23:59"

        self._set_status(recruiter_id, RecruiterStatus.blocked.value, admin_id, {"block_info": block_info})
        self.notifications.create_notification(
            recruiter_id, "Account Blocked",
            f"Your recruiter account has been blocked. Reason: {reason}",
            {"action": "blocked", "block_type": block_type.value}
        )
        logger.info("Recruiter %s (%s) blocked by %s", recruiter_id, recruiter.get("email"), admin_id)
        return {"success": True, "action": "blocked", "recruiter": self.get_recruiter(recruiter_id)}

    def update_recruiter_status(self, recruiter_id: str, status: str, admin_id: str) -> dict:
        try:
            status = RecruiterStatus(status).value
        except ValueError:
            raise ValidationError(f"Unknown recruiter status '{status}'")

        self.get_recruiter(recruiter_id)
        self._set_status(recruiter_id, status, admin_id)
        self.notifications.create_notification(
            recruiter_id, f"Status Updated to {status}",
            f"Your recruiter account status has been updated to {status}.",
            {"status": status}
        )
        logger.info("Recruiter %s status -> %s", recruiter_id, status)
        return self.get_recruiter(recruiter_id)

    def search_recruiters(self, term: str = "", status: Optional[str] = None) -> List[dict]:
        """Recruiters whose email, name, company or location contains `term`."""
        query: Dict[str, Any] = {"role": UserRole.recruiter.value}
        if status:
            query["status"] = status
        try:
            recruiters = serialize_docs(self.users.find(query))
        except OperationFailure as e:
            logger.warning("Recruiter search failed: %s", e)
            return []

        needle = (term or "").strip().lower()
        if not needle:
            return recruiters
        return [
            recruiter for recruiter in recruiters
            if any(needle in str(_field(recruiter, path) or "").lower() for path in SEARCH_FIELDS)
        ]

    def get_recruiter_jobs(self, recruiter_id: str) -> List[dict]:
        try:
            cursor = self.jobs.find({"recruiter_id": recruiter_id}).sort("created_at", DESCENDING)
            return serialize_docs(cursor)
        except OperationFailure as e:
            logger.warning("Listing jobs for recruiter %s failed: %s", recruiter_id, e)
            return []

    def get_recruiter_summary(self, recruiter_id: str) -> Dict[str, Any]:
        recruiter = self.get_recruiter(recruiter_id)
        jobs = self.get_recruiter_jobs(recruiter_id)

        def at_center(job: dict, center: str) -> bool:
            return center in (job.get("target_centers") or []) or center in (job.get("location") or "")

        return {
            "jobs_per_center": {center: sum(at_center(job, center) for job in jobs) for center in CENTERS},
            "jobs_per_school": {
                school: sum(school in (job.get("target_schools") or []) for job in jobs) for school in SCHOOLS
            },
            "total_jobs": len(jobs),
            "active_jobs": sum(job.get("status") == "open" for job in jobs),
            "join_date": recruiter.get("created_at"),
            "status": recruiter["status"],
            "status_changes": len(recruiter.get("status_history") or []),
        }


def get_recruiter_service() -> RecruiterService:
    return RecruiterService()
