"""
S3 storage utilities for course content files.

Resolves the content bucket and generates pre-signed URLs for secure
downloads of content files uploaded out of band.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


def get_s3_client():
    """
    Get S3 client instance.

    Uses AWS_REGION environment variable if set, otherwise defaults to us-east-2.
    """
    region = os.getenv("AWS_REGION", "us-east-2")
    return boto3.client("s3", region_name=region)


def get_content_bucket() -> Optional[str]:
    """
    Get the content bucket name from the CONTENT_BUCKET environment variable.

    Returns:
        The bucket name, or None when content files are not stored in S3.
    """
    return os.getenv("CONTENT_BUCKET") or None


def generate_presigned_download_url(storage_key: str, expiration: int = 900) -> Optional[str]:
    """
    Generate a pre-signed URL for downloading a content file.

    Args:
        storage_key: Key of the object inside the content bucket.
        expiration: URL expiration time in seconds (default: 900 = 15 minutes).

    Returns:
        Pre-signed URL string, or None if the bucket is not configured or
        generation failed.
    """
    bucket = get_content_bucket()
    if not bucket:
        return None

    try:
        presigned_url = get_s3_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": storage_key},
            ExpiresIn=expiration,
        )
        logger.info(f"Generated pre-signed URL for {storage_key} (expires in {expiration}s)")
        return presigned_url
    except (ClientError, BotoCoreError) as e:
        logger.error(f"S3 error generating pre-signed URL for {storage_key}: {e}")
        return None
