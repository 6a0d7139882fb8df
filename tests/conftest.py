# tests/conftest.py
import io

import mongomock
import pytest
from PyPDF2 import PdfWriter
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from placement_portal.core.config import get_settings
from placement_portal.db import mongodb, postgres
from placement_portal.services.job_service import JobService
from placement_portal.services.student_service import StudentService


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch):
    """Every test gets a fresh in-memory MongoDB (no sessions, so no transactions)."""
    client = mongomock.MongoClient()
    db = client["placement_portal_test"]
    monkeypatch.setattr(mongodb, "_client", client)
    monkeypatch.setattr(mongodb, "_db", db)
    monkeypatch.setattr(get_settings(), "mongodb_transactions", False)
    mongodb.init_mongo_indexes()
    yield db


@pytest.fixture(autouse=True)
def identity_db(monkeypatch):
    """In-memory SQLite standing in for the PostgreSQL identity tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    postgres.init_postgres_schema(engine)
    monkeypatch.setattr(
        postgres, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )
    yield engine
    engine.dispose()


@pytest.fixture
def student_id():
    StudentService().create_student_profile("stu1", {
        "full_name": "Asha Rao",
        "email": "Asha@College.edu",
        "center": "Pune",
        "school": "SOT",
        "batch": "2024",
        "cgpa": 8.1,
    })
    return "stu1"


@pytest.fixture
def job_id():
    return JobService().create_job("rec1", {
        "title": "Backend Developer",
        "company": {"name": "Acme Corp", "website": "https://acme.example"},
        "salary": 1200000,
        "location": "Bengaluru",
        "eligibility_criteria": "CGPA >= 7.5",
    })


class DummyS3Client:
    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body, ContentType=None):
        self.objects[(Bucket, Key)] = Body
        return {"ETag": '"dummy-etag"'}

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        return f"https://fake.s3/{Params['Bucket']}/{Params['Key']}?expires_in={ExpiresIn}"

    def delete_object(self, Bucket, Key):
        self.objects.pop((Bucket, Key), None)
        return {"ResponseMetadata": {"HTTPStatusCode": 204}}


@pytest.fixture
def s3(monkeypatch):
    dummy = DummyS3Client()
    monkeypatch.setattr("placement_portal.services.storage._get_s3_client", lambda: dummy)
    return dummy


@pytest.fixture
def pdf_bytes():
    """A real one-page PDF padded past the 1KB minimum."""
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    writer.add_metadata({"/Title": "Resume " + "x" * 2048})
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()
