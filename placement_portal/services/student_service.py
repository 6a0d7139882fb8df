"""
Student Service - profiles, embedded profile sections and eligibility.

A student document is keyed by the owning user id and carries:
- profile fields (name, email, phone, center, school, batch, cgpa, bio, links)
- `stats`: denormalized application counters maintained by the
  application service
- embedded arrays (education, skills, projects, achievements), each entry
  with a generated string `id`
"""

import logging
import re
import uuid
from typing import Any, Dict, List, Optional

from pymongo.collection import Collection
from pymongo.errors import OperationFailure

from placement_portal.core.errors import NotFoundError, ValidationError
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.services.mongo_service import serialize_doc, serialize_docs, utcnow

logger = logging.getLogger(__name__)

STAT_FIELDS = ("applied", "shortlisted", "interviewed", "offers")
ENTRY_FIELDS = ("education", "skills", "projects", "achievements")
URL_FIELDS = ("website", "linkedin", "github")

CGPA_PATTERN = re.compile(r"CGPA\s*>=\s*(\d+\.?\d*)", re.IGNORECASE)


def empty_stats() -> Dict[str, int]:
    return {field: 0 for field in STAT_FIELDS}


def normalize_url(url: Optional[str]) -> Optional[str]:
    """Prefix a bare host with https://; blank values become None."""
    if url is None:
        return None
    url = url.strip()
    if not url:
        return None
    if url.startswith(("http://", "https://")):
        return url
    return f"https://{url}"


def normalize_profile(data: Dict[str, Any]) -> Dict[str, Any]:
    """Lowercase the email and prefix profile links."""
    out = dict(data)
    if out.get("email"):
        out["email"] = out["email"].strip().lower()
    for field in URL_FIELDS:
        if field in out:
            out[field] = normalize_url(out[field])
    return out


def required_cgpa(eligibility_criteria: Optional[str]) -> Optional[float]:
    """CGPA threshold stated in a free-text criteria string, if any."""
    if not eligibility_criteria:
        return None
    match = CGPA_PATTERN.search(eligibility_criteria)
    return float(match.group(1)) if match else None


def meets_eligibility(cgpa: Optional[float], eligibility_criteria: Optional[str]) -> bool:
    """
    Check a student's CGPA against a job's eligibility criteria.

    Missing CGPA, missing criteria or criteria without a CGPA clause all
    count as eligible.
    """
    if not cgpa or not eligibility_criteria:
        return True
    threshold = required_cgpa(eligibility_criteria)
    if threshold is None:
        return True
    return float(cgpa) >= threshold


class StudentService:
    """Student profile documents."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["students"])

    # ---------------- profile ----------------

    def get_student_profile(self, student_id: str) -> Optional[dict]:
        """Fetch a profile; a missing student is None, not an error."""
        return serialize_doc(self.collection.find_one({"_id": student_id}))

    def create_student_profile(self, student_id: str, profile_data: Dict[str, Any]) -> bool:
        now = utcnow()
        doc = {
            "_id": student_id,
            "uid": student_id,
            **normalize_profile(profile_data),
            "stats": empty_stats(),
            "created_at": now,
            "updated_at": now,
        }
        for field in ENTRY_FIELDS:
            doc.setdefault(field, [])
        self.collection.insert_one(doc)
        logger.info("Created student profile %s", student_id)
        return True

    def update_student_profile(self, student_id: str, profile_data: Dict[str, Any]) -> bool:
        """Partial update; `stats` is owned by the application service."""
        updates = {k: v for k, v in normalize_profile(profile_data).items() if k not in ("stats", "_id", "uid")}
        if not updates:
            raise ValidationError("No fields to update")
        result = self.collection.update_one(
            {"_id": student_id},
            {"$set": {**updates, "updated_at": utcnow()}}
        )
        if result.matched_count == 0:
            raise NotFoundError("Student profile not found")
        return True

    def get_all_students(self) -> List[dict]:
        try:
            return serialize_docs(self.collection.find({}))
        except OperationFailure as e:
            logger.warning("Listing students failed: %s", e)
            return []

    def filter_students(
        self,
        centers: Optional[List[str]] = None,
        schools: Optional[List[str]] = None,
        batches: Optional[List[str]] = None,
    ) -> List[dict]:
        """Students matching every non-empty filter list."""
        query: Dict[str, Any] = {}
        if centers:
            query["center"] = {"$in": list(centers)}
        if schools:
            query["school"] = {"$in": list(schools)}
        if batches:
            query["batch"] = {"$in": list(batches)}
        try:
            return serialize_docs(self.collection.find(query))
        except OperationFailure as e:
            logger.warning("Filtering students failed: %s", e)
            return []

    def get_stats(self, student_id: str) -> Dict[str, int]:
        doc = self.collection.find_one({"_id": student_id}, {"stats": 1})
        if not doc:
            raise NotFoundError("Student profile not found")
        return {**empty_stats(), **(doc.get("stats") or {})}

    # ---------------- embedded sections ----------------

    @staticmethod
    def _check_field(field: str) -> None:
        if field not in ENTRY_FIELDS:
            raise ValidationError(f"Unknown profile section '{field}'")

    def list_entries(self, student_id: str, field: str) -> List[dict]:
        self._check_field(field)
        doc = self.collection.find_one({"_id": student_id}, {field: 1})
        if not doc:
            return []
        return list(doc.get(field) or [])

    def add_entry(self, student_id: str, field: str, data: Dict[str, Any]) -> str:
        """Append an entry with a generated id to an embedded section."""
        self._check_field(field)
        entry_id = uuid.uuid4().hex
        entry = {**data, "id": entry_id, "created_at": utcnow()}
        result = self.collection.update_one(
            {"_id": student_id},
            {"$push": {field: entry}, "$set": {"updated_at": utcnow()}}
        )
        if result.matched_count == 0:
            raise NotFoundError("Student profile not found")
        return entry_id

    def update_entry(self, student_id: str, field: str, entry_id: str, data: Dict[str, Any]) -> bool:
        self._check_field(field)
        entries = self.list_entries(student_id, field)
        for entry in entries:
            if entry.get("id") == entry_id:
                entry.update({k: v for k, v in data.items() if k != "id"})
                entry["updated_at"] = utcnow()
                break
        else:
            raise NotFoundError("Entry not found")
        self.collection.update_one(
            {"_id": student_id},
            {"$set": {field: entries, "updated_at": utcnow()}}
        )
        return True

    def remove_entry(self, student_id: str, field: str, entry_id: str) -> bool:
        self._check_field(field)
        result = self.collection.update_one(
            {"_id": student_id, f"{field}.id": entry_id},
            {"$pull": {field: {"id": entry_id}}, "$set": {"updated_at": utcnow()}}
        )
        return result.matched_count > 0


def get_student_service() -> StudentService:
    return StudentService()
