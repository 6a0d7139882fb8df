"""
Object storage for resume PDFs (S3, Cloudflare R2 or MinIO through boto3).
"""

import logging
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from placement_portal.core.config import get_settings
from placement_portal.core.errors import StorageError

logger = logging.getLogger(__name__)


def _get_s3_client():
    """
    Return a boto3 S3 client. Endpoint and keys are optional so the default
    AWS credential chain still applies when they are unset.
    """
    settings = get_settings()
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint or None,
        aws_access_key_id=settings.s3_access_key or None,
        aws_secret_access_key=settings.s3_secret_key or None,
        config=Config(signature_version="s3v4"),
        region_name=settings.s3_region or None,
    )


def upload_bytes(key: str, data: bytes, content_type: str = "application/octet-stream",
                 bucket: Optional[str] = None) -> str:
    """Blocking upload helper for bytes. Returns the key."""
    bucket = bucket or get_settings().s3_bucket
    try:
        _get_s3_client().put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)
    except (BotoCoreError, ClientError) as e:
        logger.error("S3 upload of %s failed: %r", key, e)
        raise StorageError("Failed to upload file. Please try again.")
    return key


def generate_presigned_url(key: str, expires_in: Optional[int] = None,
                           bucket: Optional[str] = None) -> str:
    """
    GET URL for an object: under `s3_public_base_url` when configured,
    otherwise a presigned URL.
    """
    settings = get_settings()
    bucket = bucket or settings.s3_bucket
    if settings.s3_public_base_url:
        return f"{settings.s3_public_base_url.rstrip('/')}/{key}"
    try:
        return _get_s3_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_in or settings.resume_url_expires,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Presigning %s failed: %r", key, e)
        raise StorageError("Failed to get download URL.")


def delete_object(key: str, bucket: Optional[str] = None) -> bool:
    """Delete an object. Returns False when the store refused."""
    bucket = bucket or get_settings().s3_bucket
    try:
        _get_s3_client().delete_object(Bucket=bucket, Key=key)
        return True
    except (BotoCoreError, ClientError) as e:
        logger.warning("S3 delete of %s failed: %r", key, e)
        return False
