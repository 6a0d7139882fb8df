"""
Schemas module - Request/Response schemas for API endpoints.
"""
from placement_portal.schemas.schemas import ApplicationStatus, EmailStatus, UserRole

__all__ = ["ApplicationStatus", "EmailStatus", "UserRole"]
