"""
Placement Portal - Main Application

FastAPI backend with:
- MongoDB for students, jobs, applications and everything around them
- PostgreSQL as the identity provider (credentials, revoked tokens)
- S3 compatible storage for resume PDFs
- JWT authentication

Run: uvicorn placement_portal.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError
from sqlalchemy.exc import SQLAlchemyError

from placement_portal.api.routes import api_router
from placement_portal.core.config import get_settings
from placement_portal.core.errors import register_exception_handlers
from placement_portal.core.logging import setup_logging
from placement_portal.db.mongodb import init_mongo_indexes, test_mongo_connection
from placement_portal.db.postgres import init_postgres_schema, test_postgres_connection

setup_logging()
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create MongoDB indexes and the identity tables on startup."""
    try:
        init_mongo_indexes()
    except PyMongoError as e:
        logger.warning("MongoDB index initialization failed: %s", e)
    try:
        init_postgres_schema()
        logger.info("PostgreSQL identity schema ready")
    except SQLAlchemyError as e:
        logger.warning("PostgreSQL schema initialization failed: %s", e)
    yield


# Create FastAPI app
app = FastAPI(
    title="Placement Portal",
    description="""
    Student placement portal backend.

    ## Features
    - **Authentication**: JWT-based auth for students, recruiters and admins
    - **Students**: Profiles, profile sections, skills, projects, education
    - **Jobs**: Postings with eligibility criteria and targeted email alerts
    - **Applications**: Apply, status pipeline, live application feed (SSE)
    - **Notifications**: Job posting emails, unsubscribe links, in-app alerts
    - **Resumes**: Resume builder data and uploaded resume PDFs
    - **Admin**: Stats reconciliation and orphaned application cleanup
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Placement Portal"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "postgres": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
