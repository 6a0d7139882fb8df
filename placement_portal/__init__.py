"""
Placement Portal
Backend for a student placement portal with student, recruiter and admin dashboards.

Architecture:
- MongoDB: Documents (students, jobs, applications, notifications, resumes)
- PostgreSQL: Identity provider (credentials, revoked tokens)
- S3 compatible storage: Uploaded resume PDFs
"""

__version__ = "1.0.0"
