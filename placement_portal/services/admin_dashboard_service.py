"""
Admin Dashboard Service - placement statistics and CSV reports.

Both the stats and the exports take the same optional center, school and
batch filters. Students match on their own fields; jobs match when the
value is in the corresponding `target_*` list; applications follow the
students they belong to.
"""

import csv
import logging
from io import StringIO
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection

from placement_portal.core.errors import ValidationError
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.schemas.schemas import ApplicationStatus, JobStatus, RecruiterStatus, UserRole

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

EXPORT_COLUMNS = {
    "applications": [
        "Student Name", "Email", "Job Title", "Company", "Status", "Applied Date", "School", "Batch",
    ],
    "jobs": [
        "Job Title", "Company", "Location", "Posted Date", "Applications", "Status",
        "Target Schools", "Target Batches", "Target Centers",
    ],
    "students": [
        "Name", "Email", "School", "Batch", "Center", "CGPA", "Applied", "Offers",
    ],
}


def _joined(values: Optional[List[str]]) -> str:
    return ";".join(values) if values else "All"


def _day(value: Any) -> str:
    if not value:
        return NOT_AVAILABLE
    if hasattr(value, "date"):
        return value.date().isoformat()
    return str(value)[:10]


class AdminDashboardService:

    def __init__(self):
        self.students: Collection = get_collection(COLLECTIONS["students"])
        self.jobs: Collection = get_collection(COLLECTIONS["jobs"])
        self.applications: Collection = get_collection(COLLECTIONS["applications"])
        self.users: Collection = get_collection(COLLECTIONS["users"])

    # ============================================================
    # FILTERED READS
    # ============================================================

    def _students(self, center=None, school=None, batch=None) -> List[dict]:
        query = {k: v for k, v in (("center", center), ("school", school), ("batch", batch)) if v}
        return list(self.students.find(query))

    def _jobs(self, center=None, school=None, batch=None) -> List[dict]:
        query = {
            k: v for k, v in (
                ("target_centers", center), ("target_schools", school), ("target_batches", batch)
            ) if v
        }
        return list(self.jobs.find(query).sort("created_at", DESCENDING))

    def _applications(self, student_ids: Optional[List[str]] = None) -> List[dict]:
        query = {} if student_ids is None else {"student_id": {"$in": student_ids}}
        return list(self.applications.find(query))

    # ============================================================
    # STATS
    # ============================================================

    def get_dashboard_stats(self, center=None, school=None, batch=None) -> Dict[str, Any]:
        filtered = any((center, school, batch))
        students = self._students(center, school, batch)
        jobs = self._jobs(center, school, batch)
        applications = self._applications([s["_id"] for s in students] if filtered else None)

        total_students = len(students)
        placed = sum(1 for s in students if (s.get("stats") or {}).get("offers", 0) > 0)
        placement_rate = round(placed / total_students * 100, 1) if total_students else 0.0

        active_recruiters = self.users.count_documents({
            "role": UserRole.recruiter.value,
            "status": {"$nin": [RecruiterStatus.blocked.value, RecruiterStatus.inactive.value]},
        })

        return {
            "total_students": total_students,
            "total_jobs": len(jobs),
            "active_jobs": sum(1 for j in jobs if j.get("status") == JobStatus.open.value),
            "pending_jobs": sum(1 for j in jobs if j.get("status") == JobStatus.draft.value),
            "total_applications": len(applications),
            "applications_in_review": sum(
                1 for a in applications if a.get("status") == ApplicationStatus.applied.value
            ),
            "placed_students": placed,
            "placement_rate": placement_rate,
            "companies": len({j["company_name"] for j in jobs if j.get("company_name")}),
            "active_recruiters": active_recruiters,
        }

    # ============================================================
    # CSV EXPORT
    # ============================================================

    def _rows(self, dataset: str, center=None, school=None, batch=None) -> List[Dict[str, Any]]:
        if dataset == "students":
            return [
                {
                    "Name": s.get("full_name") or NOT_AVAILABLE,
                    "Email": s.get("email") or NOT_AVAILABLE,
                    "School": s.get("school") or NOT_AVAILABLE,
                    "Batch": s.get("batch") or NOT_AVAILABLE,
                    "Center": s.get("center") or NOT_AVAILABLE,
                    "CGPA": s.get("cgpa") if s.get("cgpa") is not None else NOT_AVAILABLE,
                    "Applied": (s.get("stats") or {}).get("applied", 0),
                    "Offers": (s.get("stats") or {}).get("offers", 0),
                }
                for s in self._students(center, school, batch)
            ]

        if dataset == "jobs":
            jobs = self._jobs(center, school, batch)
            counts: Dict[str, int] = {}
            for app in self._applications():
                counts[app.get("job_id")] = counts.get(app.get("job_id"), 0) + 1
            return [
                {
                    "Job Title": j.get("title") or NOT_AVAILABLE,
                    "Company": j.get("company_name") or NOT_AVAILABLE,
                    "Location": j.get("location") or NOT_AVAILABLE,
                    "Posted Date": _day(j.get("created_at")),
                    "Applications": counts.get(str(j["_id"]), 0),
                    "Status": j.get("status") or NOT_AVAILABLE,
                    "Target Schools": _joined(j.get("target_schools")),
                    "Target Batches": _joined(j.get("target_batches")),
                    "Target Centers": _joined(j.get("target_centers")),
                }
                for j in jobs
            ]

        students = {s["_id"]: s for s in self._students(center, school, batch)}
        jobs = {str(j["_id"]): j for j in self.jobs.find({}, {"title": 1, "company_name": 1})}
        rows = []
        for app in self._applications(list(students)):
            student = students.get(app.get("student_id"), {})
            job = jobs.get(app.get("job_id"), {})
            rows.append({
                "Student Name": student.get("full_name") or NOT_AVAILABLE,
                "Email": student.get("email") or NOT_AVAILABLE,
                "Job Title": job.get("title") or NOT_AVAILABLE,
                "Company": job.get("company_name") or NOT_AVAILABLE,
                "Status": app.get("status") or NOT_AVAILABLE,
                "Applied Date": app.get("applied_date") or _day(app.get("created_at")),
                "School": student.get("school") or NOT_AVAILABLE,
                "Batch": student.get("batch") or NOT_AVAILABLE,
            })
        return rows

    def export_csv(self, dataset: str = "applications", center=None, school=None, batch=None) -> str:
        """
        Render one dataset ("applications", "jobs" or "students") as CSV text.

        Raises:
            ValidationError: unknown dataset.
        """
        if dataset not in EXPORT_COLUMNS:
            raise ValidationError(f"Unknown dataset '{dataset}'")

        output = StringIO()
        writer = csv.DictWriter(output, fieldnames=EXPORT_COLUMNS[dataset])
        writer.writeheader()
        rows = self._rows(dataset, center, school, batch)
        writer.writerows(rows)
        logger.info("Exported %d %s rows", len(rows), dataset)
        return output.getvalue()


def get_admin_dashboard_service() -> AdminDashboardService:
    return AdminDashboardService()
