"""
Notification Services - job posting emails and in-app notifications.

Emails are not sent from here. Each eligible student gets a `pending`
record in `emailNotifications`; a mail worker renders it with
`email_templates` and reports delivery back through
`update_email_notification_status`.

Opt-out is tracked twice, as the student portal does it:
- `students.email_notifications_disabled` (profile switch)
- `unsubscribedUsers` (one-click unsubscribe link in every email)
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import OperationFailure, PyMongoError

from placement_portal.core.auth import create_purpose_token, verify_purpose_token
from placement_portal.core.config import get_settings
from placement_portal.core.errors import InvalidStatusError, InvalidTokenError, NotFoundError
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.schemas.schemas import EmailStatus, EmailType
from placement_portal.services.email_templates import (
    render_job_posting_email_html, render_job_posting_email_text
)
from placement_portal.services.mongo_service import id_filter, serialize_doc, serialize_docs, utcnow

logger = logging.getLogger(__name__)

UNSUBSCRIBE_PURPOSE = "unsubscribe"
PASSWORD_RESET_PURPOSE = "password_reset"

# status -> timestamp field written when a notification reaches it
STATUS_TIMESTAMPS = {
    EmailStatus.sent: "sent_at",
    EmailStatus.delivered: "delivered_at",
    EmailStatus.opened: "opened_at",
    EmailStatus.clicked: "clicked_at",
    EmailStatus.failed: "failed_at",
}


def empty_email_stats() -> Dict[str, int]:
    return {"total": 0, **{status.value: 0 for status in EmailStatus}}


def create_unsubscribe_token(email: str) -> str:
    return create_purpose_token(email.strip().lower(), UNSUBSCRIBE_PURPOSE)


def verify_unsubscribe_token(email: str, token: str) -> bool:
    return verify_purpose_token(token, UNSUBSCRIBE_PURPOSE, subject=email.strip().lower()) is not None


def _matches(targets: Optional[List[str]], value: Any) -> bool:
    return not targets or value in targets


class EmailNotificationService:

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["email_notifications"])
        self.unsubscribed: Collection = get_collection(COLLECTIONS["unsubscribed_users"])
        self.students: Collection = get_collection(COLLECTIONS["students"])

    # ============================================================
    # SUBSCRIPTION
    # ============================================================

    def check_if_unsubscribed(self, email: str) -> bool:
        """Store errors count as subscribed."""
        try:
            return self.unsubscribed.find_one({"email": email.strip().lower()}, {"_id": 1}) is not None
        except PyMongoError as e:
            logger.error("Error checking unsubscribe status for %s: %s", email, e)
            return False

    def unsubscribe_user(self, email: str, token: str) -> Dict[str, Any]:
        """
        Record an opt-out from job posting emails. Idempotent.

        Raises:
            InvalidTokenError: empty token, or a token not signed for this email.
        """
        if not isinstance(token, str) or not token:
            raise InvalidTokenError("Invalid unsubscribe token")
        if get_settings().unsubscribe_token_verification and not verify_unsubscribe_token(email, token):
            raise InvalidTokenError("Invalid unsubscribe token")

        email = email.strip().lower()
        if self.check_if_unsubscribed(email):
            return {"success": True, "message": "User was already unsubscribed"}

        self.unsubscribed.insert_one({
            "email": email,
            "unsubscribed_at": utcnow(),
            "unsubscribe_token": token,
            "source": "job_posting_email",
        })
        logger.info("Unsubscribed %s from job notifications", email)
        return {"success": True, "message": "Successfully unsubscribed from job notifications"}

    def resubscribe_user(self, email: str) -> Dict[str, Any]:
        result = self.unsubscribed.delete_many({"email": email.strip().lower()})
        if result.deleted_count == 0:
            return {"success": True, "message": "User was not unsubscribed"}
        logger.info("Re-subscribed %s to job notifications", email)
        return {"success": True, "message": "Successfully re-subscribed to job notifications"}

    # ============================================================
    # QUEUEING
    # ============================================================

    def _eligible_students(
        self,
        target_centers: Optional[List[str]],
        target_schools: Optional[List[str]],
        target_batches: Optional[List[str]],
    ) -> List[dict]:
        students = serialize_docs(self.students.find({"email_notifications_disabled": {"$ne": True}}))
        return [
            s for s in students
            if _matches(target_centers, s.get("center"))
            and _matches(target_schools, s.get("school"))
            and _matches(target_batches, s.get("batch"))
        ]

    def send_job_posting_notifications(
        self,
        job: Dict[str, Any],
        target_centers: Optional[List[str]] = None,
        target_schools: Optional[List[str]] = None,
        target_batches: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Queue one `pending` job posting email per eligible, subscribed student.

        Every non-empty target list must contain the student's value.
        """
        target_centers = target_centers or []
        target_schools = target_schools or []
        target_batches = target_batches or []

        eligible = self._eligible_students(target_centers, target_schools, target_batches)
        if not eligible:
            logger.info("No eligible students for job %s", job.get("id"))
            return {"success": True, "emails_sent": 0, "message": "No eligible students found"}

        recipients = [s for s in eligible if s.get("email") and not self.check_if_unsubscribed(s["email"])]
        company = job.get("company")
        company_name = job.get("company_name") or (company.get("name") if isinstance(company, dict) else company)
        now = utcnow()

        records = [
            {
                "to": student["email"],
                "student_id": student["id"],
                "student_name": student.get("full_name"),
                "job_id": job.get("id"),
                "job_title": job.get("title"),
                "company": company_name or "Company",
                "drive_date": job.get("drive_date"),
                "salary": job.get("salary"),
                "location": job.get("location"),
                "job_description": job.get("description"),
                "application_deadline": job.get("application_deadline"),
                "unsubscribe_token": create_unsubscribe_token(student["email"]),
                "email_type": EmailType.job_posting.value,
                "status": EmailStatus.pending.value,
                "created_at": now,
                "metadata": {
                    "target_centers": target_centers,
                    "target_schools": target_schools,
                    "target_batches": target_batches,
                    "student_center": student.get("center"),
                    "student_school": student.get("school"),
                    "student_batch": student.get("batch"),
                },
            }
            for student in recipients
        ]
        if records:
            self.collection.insert_many(records)

        logger.info(
            "Queued %d job posting emails for job %s (%d unsubscribed)",
            len(records), job.get("id"), len(eligible) - len(recipients)
        )
        return {
            "success": True,
            "emails_sent": len(records),
            "message": f"Queued {len(records)} email notifications",
        }

    def queue_password_reset_email(self, email: str, user_id: str) -> str:
        """Queue a reset email carrying a short-lived signed token. Returns the token."""
        token = create_purpose_token(
            str(user_id),
            PASSWORD_RESET_PURPOSE,
            timedelta(minutes=get_settings().password_reset_expire_minutes),
        )
        self.collection.insert_one({
            "to": email.strip().lower(),
            "user_id": str(user_id),
            "reset_token": token,
            "email_type": EmailType.password_reset.value,
            "status": EmailStatus.pending.value,
            "created_at": utcnow(),
            "metadata": {},
        })
        return token

    # ============================================================
    # DELIVERY TRACKING
    # ============================================================

    def get_email_notification_stats(self, job_id: str) -> Dict[str, int]:
        stats = empty_email_stats()
        try:
            for record in self.collection.find({"job_id": job_id}, {"status": 1}):
                stats["total"] += 1
                status = record.get("status") or EmailStatus.pending.value
                if status in stats:
                    stats[status] += 1
        except PyMongoError as e:
            logger.error("Error getting email notification stats for job %s: %s", job_id, e)
            return empty_email_stats()
        return stats

    def update_email_notification_status(
        self,
        notification_id: str,
        status: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Called by the mail worker as a message moves through delivery."""
        try:
            status = EmailStatus(status)
        except ValueError:
            raise InvalidStatusError(f"Unknown email status '{status}'")

        metadata = metadata or {}
        now = utcnow()
        update = {**metadata, "status": status.value, "updated_at": now}
        timestamp_field = STATUS_TIMESTAMPS.get(status)
        if timestamp_field:
            update[timestamp_field] = now
        if status == EmailStatus.failed:
            update["error_message"] = metadata.get("error") or "Unknown error"

        result = self.collection.update_one(id_filter(notification_id), {"$set": update})
        if result.matched_count == 0:
            raise NotFoundError("Email notification not found")
        logger.info("Email notification %s -> %s", notification_id, status.value)
        return True

    def get_notification(self, notification_id: str) -> Optional[dict]:
        return serialize_doc(self.collection.find_one(id_filter(notification_id)))

    def render_notification(self, notification_id: str) -> Dict[str, str]:
        """HTML and text bodies for a queued job posting email."""
        record = self.get_notification(notification_id)
        if not record:
            raise NotFoundError("Email notification not found")
        return {
            "to": record["to"],
            "subject": f"New Job Opportunity - {record.get('job_title') or ''}",
            "html": render_job_posting_email_html(record),
            "text": render_job_posting_email_text(record),
        }


class NotificationService:
    """In-app notifications shown in the dashboard bell."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["notifications"])

    def create_notification(
        self,
        user_id: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> str:
        result = self.collection.insert_one({
            "user_id": user_id,
            "title": title,
            "body": body,
            "data": data or {},
            "read": False,
            "created_at": utcnow(),
        })
        return str(result.inserted_id)

    def list_notifications_for_user(self, user_id: str, limit: int = 50) -> List[dict]:
        try:
            cursor = self.collection.find({"user_id": user_id}).sort("created_at", DESCENDING).limit(limit)
            return serialize_docs(cursor)
        except OperationFailure as e:
            logger.warning("Listing notifications for %s failed: %s", user_id, e)
            return []

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        result = self.collection.update_one(
            {**id_filter(notification_id), "user_id": user_id},
            {"$set": {"read": True, "read_at": utcnow()}}
        )
        if result.matched_count == 0:
            raise NotFoundError("Notification not found")
        return True

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of a user as read. Returns how many changed."""
        result = self.collection.update_many(
            {"user_id": user_id, "read": False},
            {"$set": {"read": True, "read_at": utcnow()}}
        )
        return result.modified_count

    def unread_count(self, user_id: str) -> int:
        try:
            return self.collection.count_documents({"user_id": user_id, "read": False})
        except OperationFailure as e:
            logger.warning("Counting unread notifications for %s failed: %s", user_id, e)
            return 0


def get_email_notification_service() -> EmailNotificationService:
    return EmailNotificationService()


def get_notification_service() -> NotificationService:
    return NotificationService()
