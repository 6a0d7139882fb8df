"""
MongoDB Service - shared helpers and student-owned record collections.

Student-owned records are stand-alone documents carrying a `student_id`
foreign key:
1. skills                 - skill name + self rating
2. achievements           - title, description, optional certificate
3. projects               - name, description, URL
4. educational_background - institute, degree, years, scores
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.errors import OperationFailure

from placement_portal.core.errors import NotFoundError
from placement_portal.db.mongodb import get_collection, COLLECTIONS

logger = logging.getLogger(__name__)


# ============================================================
# HELPERS: ids and serialization
# ============================================================

def id_filter(doc_id: str) -> dict:
    """Match a document by id; generated ids are ObjectIds, derived ids are strings."""
    if isinstance(doc_id, str) and ObjectId.is_valid(doc_id):
        return {"_id": {"$in": [ObjectId(doc_id), doc_id]}}
    return {"_id": doc_id}


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert a MongoDB document to a JSON-friendly dict with a string `id`."""
    if doc is None:
        return None
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def serialize_docs(docs) -> List[dict]:
    """Convert an iterable of MongoDB documents."""
    return [serialize_doc(doc) for doc in docs]


def utcnow() -> datetime:
    return datetime.utcnow()


# ============================================================
# STUDENT-OWNED RECORDS
# ============================================================

class OwnedRecordService:
    """
    CRUD for a collection of records owned by one student.

    Subclasses set the collection, the sort order used by listings and the
    fields a caller may write.
    """

    collection_key: str = ""
    sort: List[Tuple[str, int]] = [("created_at", DESCENDING)]
    fields: Tuple[str, ...] = ()

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS[self.collection_key])

    def _pick(self, data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        """Writable fields of `data`; with `partial` only the keys it actually has."""
        if partial:
            return {field: data[field] for field in self.fields if field in data}
        return {field: data.get(field) for field in self.fields}

    def list(self, student_id: str) -> List[dict]:
        """All records for a student. A denied read yields an empty list."""
        try:
            cursor = self.collection.find({"student_id": student_id}).sort(self.sort)
            return serialize_docs(cursor)
        except OperationFailure as e:
            logger.warning("Listing %s for %s failed: %s", self.collection.name, student_id, e)
            return []

    def get(self, record_id: str) -> Optional[dict]:
        return serialize_doc(self.collection.find_one(id_filter(record_id)))

    def add(self, student_id: str, data: Dict[str, Any]) -> str:
        doc = {"student_id": student_id, **self._pick(data), "created_at": utcnow()}
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def update(self, record_id: str, data: Dict[str, Any]) -> bool:
        result = self.collection.update_one(
            id_filter(record_id),
            {"$set": {**self._pick(data, partial=True), "updated_at": utcnow()}}
        )
        if result.matched_count == 0:
            raise NotFoundError(f"{self.collection.name} record not found")
        return True

    def delete(self, record_id: str) -> bool:
        result = self.collection.delete_one(id_filter(record_id))
        return result.deleted_count > 0


class SkillService(OwnedRecordService):
    collection_key = "skills"
    sort = [("skill_name", ASCENDING)]
    fields = ("skill_name", "rating")

    def add_or_update(self, student_id: str, data: Dict[str, Any]) -> str:
        """Update the rating of an existing skill with the same name, or add it."""
        existing = self.collection.find_one(
            {"student_id": student_id, "skill_name": data.get("skill_name")}
        )
        if existing:
            self.collection.update_one(
                {"_id": existing["_id"]},
                {"$set": {"rating": data.get("rating"), "updated_at": utcnow()}}
            )
            return str(existing["_id"])
        return self.add(student_id, data)


class AchievementService(OwnedRecordService):
    collection_key = "achievements"
    fields = ("title", "description", "has_certificate", "certificate_url")

    def _pick(self, data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        picked = super()._pick(data, partial)
        if "has_certificate" in picked:
            picked["has_certificate"] = bool(picked["has_certificate"])
        return picked


class ProjectService(OwnedRecordService):
    collection_key = "projects"
    fields = ("project_name", "description", "project_url")


class EducationService(OwnedRecordService):
    collection_key = "education"
    sort = [("end_year", DESCENDING)]
    fields = (
        "institute_name", "degree", "field_of_study",
        "start_year", "end_year", "percentage", "cgpa"
    )


# ============================================================
# CONVENIENCE FUNCTION: Get all record services
# ============================================================

def get_record_services() -> dict:
    """
    Get all student-owned record services.

    Usage:
        services = get_record_services()
        services['skills'].add(student_id, {...})
    """
    return {
        "skills": SkillService(),
        "achievements": AchievementService(),
        "projects": ProjectService(),
        "education": EducationService(),
    }
