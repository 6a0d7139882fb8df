"""
Resume Services

1. ResumeDataService    - resume builder state (`resume_builder_data`, one doc per user)
2. ResumeStorageService - uploaded resume PDFs in object storage, indexed in `resumes`
"""

import json
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo.collection import Collection

from placement_portal.core.errors import NotFoundError, ValidationError
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.services import storage
from placement_portal.services.mongo_service import utcnow
from placement_portal.utils.file_upload import PDF_CONTENT_TYPE, validate_resume_pdf

logger = logging.getLogger(__name__)

PERSONAL_FIELDS = ("full_name", "email", "phone", "location", "website", "linkedin", "github")
META_FIELDS = ("_id", "user_id", "created_at", "updated_at")


# ============================================================
# RESUME BUILDER DATA
# ============================================================

def validate_resume_data(resume_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    errors: List[str] = []
    if not resume_data:
        return {"is_valid": False, "errors": ["Resume data is required"]}

    personal = resume_data.get("personal")
    if not personal:
        errors.append("Personal information is required")
    else:
        if not (personal.get("full_name") or "").strip():
            errors.append("Full name is required")
        if not (personal.get("email") or "").strip():
            errors.append("Email is required")

    if not isinstance(resume_data.get("sections"), list):
        errors.append("Sections array is required")
    if not resume_data.get("settings"):
        errors.append("Settings are required")

    return {"is_valid": not errors, "errors": errors}


def get_completion_percentage(resume_data: Optional[Dict[str, Any]]) -> int:
    """Filled personal fields, summary and non-empty sections, as a 0-100 score."""
    if not resume_data:
        return 0

    personal = resume_data.get("personal") or {}
    checks = [bool((personal.get(field) or "").strip()) for field in PERSONAL_FIELDS]
    checks.append(bool((resume_data.get("summary") or "").strip()))
    checks.extend(bool(section.get("items")) for section in resume_data.get("sections") or [])

    return round(sum(checks) / len(checks) * 100) if checks else 0


class ResumeDataService:

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["resume_builder_data"])

    def save(self, user_id: str, resume_data: Dict[str, Any]) -> None:
        """Upsert the builder state; `created_at` is set only on first save."""
        data = {k: v for k, v in resume_data.items() if k not in META_FIELDS}
        now = utcnow()
        self.collection.update_one(
            {"_id": user_id},
            {
                "$set": {**data, "user_id": user_id, "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

    def get(self, user_id: str) -> Optional[dict]:
        doc = self.collection.find_one({"_id": user_id})
        if not doc:
            return None
        return {k: v for k, v in doc.items() if k not in META_FIELDS}

    def delete(self, user_id: str) -> bool:
        return self.collection.delete_one({"_id": user_id}).deleted_count > 0

    def has(self, user_id: str) -> bool:
        return self.collection.count_documents({"_id": user_id}, limit=1) > 0

    def get_metadata(self, user_id: str) -> Dict[str, Any]:
        doc = self.collection.find_one({"_id": user_id})
        if not doc:
            return {
                "has_data": False,
                "created_at": None,
                "updated_at": None,
                "personal_name": None,
                "sections_count": 0,
            }
        return {
            "has_data": True,
            "created_at": doc.get("created_at"),
            "updated_at": doc.get("updated_at"),
            "personal_name": (doc.get("personal") or {}).get("full_name") or "Untitled Resume",
            "sections_count": len(doc.get("sections") or []),
        }

    def export_json(self, user_id: str) -> str:
        data = self.get(user_id)
        if not data:
            raise NotFoundError("No resume data found to export")
        return json.dumps(data, indent=2, default=str)

    def import_json(self, user_id: str, payload: str) -> None:
        try:
            data = json.loads(payload)
        except ValueError as e:
            raise ValidationError(f"Invalid resume JSON: {e}")
        if not isinstance(data, dict) or not data.get("personal") or "sections" not in data:
            raise ValidationError("Invalid resume data format")
        self.save(user_id, data)

    def duplicate(self, source_user_id: str, target_user_id: str,
                  overrides: Optional[Dict[str, Any]] = None) -> None:
        """Copy a resume as a template for another user, without personal details."""
        source = self.get(source_user_id)
        if not source:
            raise NotFoundError("Source resume data not found")
        self.save(target_user_id, {
            **source,
            "personal": {field: "" for field in PERSONAL_FIELDS},
            **(overrides or {}),
        })


# ============================================================
# RESUME FILES
# ============================================================

def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = min(int(math.log(size, 1024)), len(units) - 1)
    value = round(size / 1024 ** i, 2)
    return f"{value:g} {units[i]}"


class ResumeStorageService:

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["resumes"])
        self.users: Collection = get_collection(COLLECTIONS["users"])

    def upload_resume_file(self, user_id: str, filename: str, content_type: str, data: bytes) -> Dict[str, Any]:
        """
        Validate and store a resume PDF, then point the user's profile at it.

        Raises:
            ValidationError: not a readable PDF of an acceptable size.
            StorageError: the bucket rejected the upload.
        """
        validate_resume_pdf(filename, content_type, data)

        timestamp = int(datetime.utcnow().timestamp() * 1000)
        resume_id = f"{user_id}_{timestamp}"
        key = storage.upload_bytes(f"resumes/{user_id}/{timestamp}.pdf", data, PDF_CONTENT_TYPE)
        url = storage.generate_presigned_url(key)
        now = utcnow()

        self.collection.insert_one({
            "_id": resume_id,
            "user_id": user_id,
            "file_name": filename,
            "file_size": len(data),
            "file_type": content_type,
            "storage_key": key,
            "url": url,
            "uploaded_at": now,
        })

        previous = self.users.find_one({"_id": user_id}, {"resume_id": 1})
        self.users.update_one(
            {"_id": user_id},
            {"$set": {
                "resume_id": resume_id,
                "resume_file_name": filename,
                "resume_uploaded_at": now,
                "has_resume": True,
            }},
            upsert=True,
        )
        if previous and previous.get("resume_id"):
            self._remove_resume(previous["resume_id"])

        logger.info("Stored resume %s (%s)", resume_id, format_file_size(len(data)))
        return {"url": url, "file_name": filename, "size": len(data), "uploaded_at": now}

    def get_resume_info(self, user_id: str) -> Dict[str, Any]:
        user = self.users.find_one({"_id": user_id}) or {}
        resume_id = user.get("resume_id")
        return {
            "url": self.get_download_url(user_id) if resume_id else None,
            "file_name": user.get("resume_file_name"),
            "uploaded_at": user.get("resume_uploaded_at"),
            "has_resume": bool(resume_id),
        }

    def get_download_url(self, user_id: str) -> Optional[str]:
        user = self.users.find_one({"_id": user_id}, {"resume_id": 1}) or {}
        if not user.get("resume_id"):
            return None
        resume = self.collection.find_one({"_id": user["resume_id"]})
        if not resume:
            return None
        return storage.generate_presigned_url(resume["storage_key"])

    def _remove_resume(self, resume_id: str) -> None:
        resume = self.collection.find_one({"_id": resume_id})
        if not resume:
            return
        storage.delete_object(resume["storage_key"])
        self.collection.delete_one({"_id": resume_id})

    def delete_resume_file(self, user_id: str) -> bool:
        user = self.users.find_one({"_id": user_id})
        if not user:
            return True
        if user.get("resume_id"):
            self._remove_resume(user["resume_id"])
        self.users.update_one({"_id": user_id}, {"$set": {
            "resume_id": None,
            "resume_file_name": None,
            "resume_uploaded_at": None,
            "has_resume": False,
        }})
        return True


def get_resume_data_service() -> ResumeDataService:
    return ResumeDataService()


def get_resume_storage_service() -> ResumeStorageService:
    return ResumeStorageService()
