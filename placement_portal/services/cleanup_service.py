"""
Application Cleanup Service

Finds applications whose job no longer exists (deleted jobs, bad imports)
and either marks them `job_removed` or deletes them.
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from placement_portal.db.batch import WriteBatch
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.schemas.schemas import ApplicationStatus
from placement_portal.services.application_service import queue_counter_shift
from placement_portal.services.mongo_service import id_filter, serialize_docs, utcnow

logger = logging.getLogger(__name__)


class ApplicationCleanupService:

    def __init__(self):
        self.applications: Collection = get_collection(COLLECTIONS["applications"])
        self.jobs: Collection = get_collection(COLLECTIONS["jobs"])

    def find_orphaned_applications(self, student_id: Optional[str] = None) -> Dict[str, Any]:
        """Split applications into valid ones and orphans with a reason."""
        query = {"student_id": student_id} if student_id else {}
        applications = serialize_docs(self.applications.find(query))
        orphaned: List[dict] = []
        valid: List[dict] = []

        for app in applications:
            job_id = app.get("job_id")
            if not job_id:
                orphaned.append({**app, "reason": "Missing job_id field"})
                continue
            try:
                job = self.jobs.find_one(id_filter(job_id), {"_id": 1})
            except PyMongoError as e:
                logger.warning("Error checking job %s: %s", job_id, e)
                orphaned.append({**app, "reason": "Error accessing job document", "error": str(e)})
                continue
            if job:
                valid.append(app)
            else:
                orphaned.append({**app, "reason": "Job document not found"})

        logger.info("Scan complete: %d valid, %d orphaned", len(valid), len(orphaned))
        return {
            "orphaned": orphaned,
            "valid": valid,
            "summary": {
                "total": len(applications),
                "valid": len(valid),
                "orphaned": len(orphaned),
            },
        }

    def mark_orphaned_applications(self, orphaned: List[dict]) -> Dict[str, Any]:
        """Move orphans to `job_removed`, taking each out of its stats bucket."""
        results: Dict[str, Any] = {"marked": 0, "errors": []}
        for app in orphaned:
            now = utcnow()
            batch = WriteBatch()
            batch.update(COLLECTIONS["applications"], id_filter(app["id"]), {"$set": {
                "status": ApplicationStatus.job_removed.value,
                "marked_orphaned": True,
                "orphaned_reason": app.get("reason"),
                "marked_at": now,
                "original_job_id": app.get("job_id"),
            }})
            queue_counter_shift(batch, app.get("student_id"), app.get("status"),
                                ApplicationStatus.job_removed, now)
            try:
                batch.commit()
                results["marked"] += 1
            except PyMongoError as e:
                logger.error("Error marking application %s: %s", app["id"], e)
                results["errors"].append({"application_id": app["id"], "error": str(e)})
        return results

    def delete_orphaned_applications(self, orphaned: List[dict]) -> Dict[str, Any]:
        """Delete orphans. `stats.applied` keeps counting them; their bucket drops."""
        results: Dict[str, Any] = {"deleted": 0, "errors": []}
        for app in orphaned:
            batch = WriteBatch()
            batch.delete(COLLECTIONS["applications"], id_filter(app["id"]))
            queue_counter_shift(batch, app.get("student_id"), app.get("status"), None)
            try:
                batch.commit()
                results["deleted"] += 1
            except PyMongoError as e:
                logger.error("Error deleting application %s: %s", app["id"], e)
                results["errors"].append({"application_id": app["id"], "error": str(e)})
        return results

    def get_application_integrity_report(self, student_id: str) -> Dict[str, Any]:
        result = self.find_orphaned_applications(student_id)
        report = {
            "student_id": student_id,
            "timestamp": utcnow().isoformat(),
            **result["summary"],
            "issues": [
                {
                    "application_id": app["id"],
                    "job_id": app.get("job_id"),
                    "reason": app["reason"],
                    "applied_date": app.get("applied_date"),
                    "status": app.get("status"),
                }
                for app in result["orphaned"]
            ],
            "recommendations": [],
        }
        if result["orphaned"]:
            report["recommendations"] = [
                'Consider marking orphaned applications with "job_removed" status',
                "Review why job documents are missing (deleted jobs, data migration issues)",
            ]
        else:
            report["recommendations"] = ["All applications have valid job references - no action needed"]
        return report

    def cleanup_student_applications(self, student_id: str, mark_only: bool = True) -> Dict[str, Any]:
        scan = self.find_orphaned_applications(student_id)
        if not scan["orphaned"]:
            return {"action": "no_action_needed", "summary": scan["summary"]}

        if mark_only:
            cleanup = self.mark_orphaned_applications(scan["orphaned"])
        else:
            cleanup = self.delete_orphaned_applications(scan["orphaned"])

        return {
            "action": "marked_orphaned" if mark_only else "deleted_orphaned",
            "summary": scan["summary"],
            "cleanup_result": cleanup,
            "timestamp": utcnow().isoformat(),
        }
