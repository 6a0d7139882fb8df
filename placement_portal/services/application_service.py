"""
Application Service - the application status lifecycle.

WHY the counters?
Each student document carries `stats = {applied, shortlisted, interviewed,
offers}` so dashboards can render without counting applications. The
counters are kept in step with application documents at write time:

- apply_to_job:              insert application + stats.applied += 1
- update_application_status: set status + old bucket -= 1 (floor 0),
                             new bucket += 1
- orphan cleanup:            mark job_removed or delete + old bucket -= 1

All writes of each operation go through one WriteBatch. `applied` counts
every application ever created and is never decremented, so
`reconcile_student_stats` rebuilds the status buckets from the applications
but only ever raises `applied`.
"""

import logging
import re
from datetime import date
from typing import Any, Dict, Iterator, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from placement_portal.core.errors import (
    DuplicateApplicationError, InvalidStatusError, NotFoundError
)
from placement_portal.db.batch import WriteBatch
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.schemas.schemas import ApplicationStatus
from placement_portal.services.mongo_service import id_filter, serialize_doc, serialize_docs, utcnow
from placement_portal.services.student_service import empty_stats

logger = logging.getLogger(__name__)

UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_POSITION = "Unknown Position"

# Status -> stats bucket. Statuses missing here touch no counter on transition.
STATUS_BUCKETS = {
    ApplicationStatus.shortlisted: "shortlisted",
    ApplicationStatus.interviewed: "interviewed",
    ApplicationStatus.offered: "offers",
}


def application_id_for(student_id: str, job_id: str) -> str:
    """Deterministic id: the store itself rejects a second (student, job) pair."""
    return f"{student_id}_{job_id}"


def parse_status(status: Any) -> ApplicationStatus:
    try:
        return ApplicationStatus(status)
    except ValueError:
        raise InvalidStatusError(f"Unknown application status '{status}'")


def bucket_for(status: Any) -> Optional[str]:
    try:
        return STATUS_BUCKETS.get(ApplicationStatus(status))
    except ValueError:
        return None


def queue_counter_shift(batch: WriteBatch, student_id: str, old_status: Any,
                        new_status: Any, now=None) -> None:
    """Queue the stats moves for `old_status` -> `new_status` (None: application gone)."""
    old_bucket = bucket_for(old_status)
    new_bucket = bucket_for(new_status)
    if old_bucket == new_bucket:
        return
    now = now or utcnow()
    if old_bucket:
        # The $gt filter keeps the counter from going below zero
        batch.update(
            COLLECTIONS["students"],
            {"_id": student_id, f"stats.{old_bucket}": {"$gt": 0}},
            {"$inc": {f"stats.{old_bucket}": -1}, "$set": {"updated_at": now}},
        )
    if new_bucket:
        batch.update(
            COLLECTIONS["students"],
            {"_id": student_id},
            {"$inc": {f"stats.{new_bucket}": 1}, "$set": {"updated_at": now}},
        )


class ApplicationService:

    def __init__(self):
        self.applications: Collection = get_collection(COLLECTIONS["applications"])
        self.students: Collection = get_collection(COLLECTIONS["students"])
        self.jobs: Collection = get_collection(COLLECTIONS["jobs"])
        self.companies: Collection = get_collection(COLLECTIONS["companies"])

    # ============================================================
    # WRITES
    # ============================================================

    def apply_to_job(self, student_id: str, job_id: str, company_id: Optional[str] = None) -> str:
        """
        Create an application and bump the student's `applied` counter.

        Raises:
            DuplicateApplicationError: the student already applied to this job.
        """
        if self.applications.find_one({"student_id": student_id, "job_id": job_id}, {"_id": 1}):
            raise DuplicateApplicationError()

        application_id = application_id_for(student_id, job_id)
        now = utcnow()

        batch = WriteBatch()
        batch.insert(COLLECTIONS["applications"], {
            "_id": application_id,
            "student_id": student_id,
            "job_id": job_id,
            "company_id": company_id,
            "applied_date": date.today().isoformat(),
            "status": ApplicationStatus.applied.value,
            "interview_date": None,
            "created_at": now,
            "updated_at": now,
        })
        # No upsert: a missing student document only skips the counter
        batch.update(
            COLLECTIONS["students"],
            {"_id": student_id},
            {"$inc": {"stats.applied": 1}, "$set": {"updated_at": now}},
        )

        try:
            batch.commit()
        except DuplicateKeyError:
            # Lost a race with a concurrent apply for the same pair
            raise DuplicateApplicationError()

        logger.info("Student %s applied to job %s", student_id, job_id)
        return application_id

    def update_application_status(
        self,
        application_id: str,
        new_status: Any,
        interview_date: Optional[str] = None,
    ) -> bool:
        """
        Move an application to a new status and shift the student's counters.

        Raises:
            NotFoundError: no such application.
            InvalidStatusError: `new_status` is not an ApplicationStatus.
        """
        status = parse_status(new_status)

        application = self.applications.find_one(id_filter(application_id))
        if not application:
            raise NotFoundError("Application not found")

        old_status = application.get("status")
        now = utcnow()

        update: Dict[str, Any] = {"status": status.value, "updated_at": now}
        if interview_date:
            update["interview_date"] = interview_date

        batch = WriteBatch()
        batch.update(COLLECTIONS["applications"], {"_id": application["_id"]}, {"$set": update})

        if old_status != status.value:
            queue_counter_shift(batch, application.get("student_id"), old_status, status, now)

        batch.commit()
        logger.info("Application %s: %s -> %s", application_id, old_status, status.value)
        return True

    # ============================================================
    # READS
    # ============================================================

    def get_application(self, application_id: str) -> Optional[dict]:
        return serialize_doc(self.applications.find_one(id_filter(application_id)))

    def _fetch_job(self, job_id: Optional[str]) -> Optional[dict]:
        if not job_id:
            return None
        return serialize_doc(self.jobs.find_one(id_filter(job_id)))

    def _fetch_company(self, company_id: Optional[str]) -> Optional[dict]:
        if not company_id:
            return None
        return serialize_doc(self.companies.find_one(id_filter(company_id)))

    def enrich(self, application: dict) -> dict:
        """
        Attach `job` and `company` display data to an application.

        A failed or empty secondary read falls back to placeholders; it is
        never raised to the caller.
        """
        job = company = None
        try:
            job = self._fetch_job(application.get("job_id"))
            if job and isinstance(job.get("company"), dict):
                company = job["company"]
            else:
                company_id = application.get("company_id") or (job or {}).get("company_id")
                company = self._fetch_company(company_id)
        except PyMongoError as e:
            logger.warning("Error fetching related data for application %s: %s", application.get("id"), e)

        application["job"] = job
        application["company"] = company
        application["job_title"] = (job or {}).get("title") or UNKNOWN_POSITION
        application["company_name"] = (
            (company or {}).get("name") or (job or {}).get("company_name") or UNKNOWN_COMPANY
        )
        return application

    def get_student_applications(self, student_id: str) -> List[dict]:
        """A student's applications, newest `applied_date` first, with job/company data."""
        cursor = self.applications.find({"student_id": student_id}).sort("applied_date", DESCENDING)
        return [self.enrich(app) for app in serialize_docs(cursor)]

    # ============================================================
    # COUNTERS
    # ============================================================

    def compute_stats(self, student_id: str) -> Dict[str, int]:
        """Counters derived from the application documents themselves."""
        stats = empty_stats()
        for app in self.applications.find({"student_id": student_id}, {"status": 1}):
            stats["applied"] += 1
            bucket = bucket_for(app.get("status"))
            if bucket:
                stats[bucket] += 1
        return stats

    def reconcile_student_stats(self, student_id: str) -> Dict[str, Any]:
        """
        Overwrite a student's status buckets with the derived ones.

        Deleted applications no longer show up in the live count, so `applied`
        is raised to it when lower and never lowered.
        """
        student = self.students.find_one({"_id": student_id}, {"stats": 1})
        if not student:
            raise NotFoundError("Student profile not found")

        before = {**empty_stats(), **(student.get("stats") or {})}
        after = self.compute_stats(student_id)
        after["applied"] = max(before["applied"], after["applied"])
        changed = before != after
        if changed:
            self.students.update_one(
                {"_id": student_id},
                {"$set": {"stats": after, "updated_at": utcnow()}}
            )
            logger.warning("Reconciled stats for %s: %s -> %s", student_id, before, after)
        return {"student_id": student_id, "before": before, "after": after, "changed": changed}


class ApplicationFeed:
    """
    Push-based view of a student's applications.

    `stream` yields a full enriched snapshot first and then again after each
    change to that student's applications, using a MongoDB change stream.
    Read failures are logged and never raised to the consumer.
    """

    def __init__(self, service: Optional[ApplicationService] = None):
        self.service = service or ApplicationService()

    def _pipeline(self, student_id: str) -> List[dict]:
        return [{"$match": {"$or": [
            {"fullDocument.student_id": student_id},
            # deletes carry no fullDocument; the derived id starts with the student id
            {"operationType": "delete",
             "documentKey._id": {"$regex": f"^{re.escape(student_id)}_"}},
        ]}}]

    def _snapshot(self, student_id: str) -> Optional[List[dict]]:
        try:
            return self.service.get_student_applications(student_id)
        except PyMongoError as e:
            logger.error("Application snapshot for %s failed: %s", student_id, e)
            return None

    def stream(self, student_id: str) -> Iterator[List[dict]]:
        snapshot = self._snapshot(student_id)
        yield snapshot if snapshot is not None else []

        try:
            with self.service.applications.watch(
                self._pipeline(student_id), full_document="updateLookup"
            ) as changes:
                for _change in changes:
                    snapshot = self._snapshot(student_id)
                    if snapshot is not None:
                        yield snapshot
        except PyMongoError as e:
            logger.error("Application change stream for %s stopped: %s", student_id, e)


def get_application_service() -> ApplicationService:
    return ApplicationService()
