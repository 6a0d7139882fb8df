"""
Job Service - job postings created by recruiters and admins.
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import OperationFailure

from placement_portal.core.errors import NotFoundError
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.services.mongo_service import id_filter, serialize_doc, serialize_docs, utcnow
from placement_portal.services.student_service import meets_eligibility

logger = logging.getLogger(__name__)


class JobService:

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["jobs"])
        self.applications: Collection = get_collection(COLLECTIONS["applications"])

    def list_jobs(
        self,
        limit: int = 50,
        recruiter_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[dict]:
        """Newest jobs first, optionally scoped to a recruiter and/or status."""
        query: Dict[str, Any] = {}
        if recruiter_id:
            query["recruiter_id"] = recruiter_id
        if status:
            query["status"] = status
        try:
            cursor = self.collection.find(query).sort("created_at", DESCENDING).limit(limit)
            return serialize_docs(cursor)
        except OperationFailure as e:
            logger.warning("Listing jobs failed: %s", e)
            return []

    def get_job(self, job_id: str) -> Optional[dict]:
        return serialize_doc(self.collection.find_one(id_filter(job_id)))

    def create_job(self, recruiter_id: str, data: Dict[str, Any]) -> str:
        now = utcnow()
        payload = {
            **data,
            "recruiter_id": recruiter_id,
            "status": data.get("status") or "open",
            "created_at": now,
            "updated_at": now,
        }
        company = payload.get("company")
        if isinstance(company, dict) and not payload.get("company_name"):
            payload["company_name"] = company.get("name")
        result = self.collection.insert_one(payload)
        logger.info("Job %s created by %s", result.inserted_id, recruiter_id)
        return str(result.inserted_id)

    def update_job(self, job_id: str, data: Dict[str, Any]) -> bool:
        result = self.collection.update_one(
            id_filter(job_id),
            {"$set": {**data, "updated_at": utcnow()}}
        )
        if result.matched_count == 0:
            raise NotFoundError("Job not found")
        return True

    def delete_job(self, job_id: str) -> bool:
        """Delete a job. Its applications stay behind as orphans for cleanup."""
        result = self.collection.delete_one(id_filter(job_id))
        if result.deleted_count == 0:
            raise NotFoundError("Job not found")
        return True

    def list_applications_for_job(self, job_id: str) -> List[dict]:
        try:
            cursor = self.applications.find({"job_id": job_id}).sort("created_at", DESCENDING)
            return serialize_docs(cursor)
        except OperationFailure as e:
            logger.warning("Listing applications for job %s failed: %s", job_id, e)
            return []

    def list_eligible_jobs(self, student: Dict[str, Any], limit: int = 50) -> List[dict]:
        """Open jobs whose CGPA criteria the student satisfies."""
        jobs = self.list_jobs(limit=limit, status="open")
        return [
            job for job in jobs
            if meets_eligibility(student.get("cgpa"), job.get("eligibility_criteria"))
        ]


def get_job_service() -> JobService:
    return JobService()
