"""
Identity Service - accounts, sessions and password resets.

Credentials live in PostgreSQL (`users`, `revoked_tokens`); the user's
profile document lives in MongoDB `users` under the same id. Registering a
student also creates their empty student profile.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import text

from placement_portal.core.auth import (
    create_access_token, decode_token, hash_password, verify_password, verify_purpose_token
)
from placement_portal.core.errors import (
    AuthenticationError, InvalidTokenError, PermissionDeniedError, ValidationError
)
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.db.postgres import get_db_session
from placement_portal.schemas.schemas import UserRole
from placement_portal.services.mongo_service import utcnow
from placement_portal.services.notification_service import (
    EmailNotificationService, PASSWORD_RESET_PURPOSE
)
from placement_portal.services.student_service import StudentService

logger = logging.getLogger(__name__)


class IdentityService:

    def __init__(self):
        self.profiles = get_collection(COLLECTIONS["users"])

    def register_with_email(
        self,
        email: str,
        password: str,
        role: str = UserRole.student.value,
        profile: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Create an account and its profile documents. Returns the user id.

        Raises:
            ValidationError: email already registered.
        """
        email = email.strip().lower()
        role = UserRole(role).value
        profile = profile or {}

        with get_db_session() as db:
            result = db.execute(
                text("SELECT user_id FROM users WHERE email = :email"),
                {"email": email}
            )
            if result.fetchone():
                raise ValidationError("Email already registered")

            db.execute(
                text("""
                    INSERT INTO users (email, password_hash, role)
                    VALUES (:email, :password_hash, :role)
                """),
                {"email": email, "password_hash": hash_password(password), "role": role}
            )
            user_id = str(db.execute(
                text("SELECT user_id FROM users WHERE email = :email"),
                {"email": email}
            ).scalar())

        doc = {
            "_id": user_id,
            "email": email,
            "role": role,
            "profile": profile,
            "created_at": utcnow(),
        }
        if role == UserRole.recruiter.value:
            doc["recruiter_verified"] = False
        self.profiles.insert_one(doc)

        if role == UserRole.student.value:
            StudentService().create_student_profile(user_id, {**profile, "email": email})

        logger.info("Registered %s as %s (user %s)", email, role, user_id)
        return user_id

    def login(self, email: str, password: str) -> Dict[str, Any]:
        with get_db_session() as db:
            result = db.execute(
                text("SELECT user_id, password_hash, role, is_active FROM users WHERE email = :email"),
                {"email": email.strip().lower()}
            )
            user = result.fetchone()

        if not user:
            raise AuthenticationError("Invalid email or password")

        user_id, password_hash, role, is_active = user

        if not is_active:
            raise PermissionDeniedError("Account deactivated")

        if not verify_password(password, password_hash):
            raise AuthenticationError("Invalid email or password")

        token = create_access_token(data={"sub": str(user_id), "role": role})
        return {"access_token": token, "user_id": user_id, "role": role}

    def reset_password(self, email: str) -> None:
        """Queue a password reset email. Unknown addresses are ignored silently."""
        email = email.strip().lower()
        with get_db_session() as db:
            row = db.execute(
                text("SELECT user_id FROM users WHERE email = :email"),
                {"email": email}
            ).fetchone()
        if not row:
            logger.info("Password reset requested for unknown email %s", email)
            return
        EmailNotificationService().queue_password_reset_email(email, str(row[0]))

    def confirm_password_reset(self, token: str, new_password: str) -> bool:
        payload = verify_purpose_token(token, PASSWORD_RESET_PURPOSE)
        if not payload:
            raise InvalidTokenError("Invalid or expired reset token")

        with get_db_session() as db:
            result = db.execute(
                text("UPDATE users SET password_hash = :password_hash WHERE user_id = :id"),
                {"password_hash": hash_password(new_password), "id": int(payload["sub"])}
            )
            if result.rowcount == 0:
                raise InvalidTokenError("Invalid or expired reset token")
        logger.info("Password reset for user %s", payload["sub"])
        return True

    def logout(self, token: str) -> bool:
        """Revoke the access token's id; later requests with it are rejected."""
        payload = decode_token(token)
        if not payload or not payload.get("jti"):
            raise InvalidTokenError("Invalid token")

        with get_db_session() as db:
            exists = db.execute(
                text("SELECT jti FROM revoked_tokens WHERE jti = :jti"),
                {"jti": payload["jti"]}
            ).fetchone()
            if not exists:
                db.execute(
                    text("INSERT INTO revoked_tokens (jti) VALUES (:jti)"),
                    {"jti": payload["jti"]}
                )
        return True

    def get_profile(self, user_id: str) -> Optional[dict]:
        doc = self.profiles.find_one({"_id": user_id})
        if doc:
            doc["id"] = doc.pop("_id")
        return doc


def get_identity_service() -> IdentityService:
    return IdentityService()
