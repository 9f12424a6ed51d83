"""
Attachment storage service.

WHAT: Upload, delete and link asset images in S3-compatible object storage.

WHY: Binary attachments never pass through the org store; assets only keep
the returned reference strings. Object keys are prefixed with the owning
organization id so one tenant's references cannot address another
tenant's objects.

HOW: Thin wrapper over a boto3 S3 client. The client is injected (tests
pass a mock); ``from_settings`` builds the production client.
"""

import logging
import uuid
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from assetdesk.core.config import settings
from assetdesk.core.exceptions import S3Error, ValidationError

logger = logging.getLogger(__name__)

MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024  # 10MB


def _sanitize_filename(filename: str) -> str:
    """Strip path separators and null bytes, cap the length."""
    filename = filename.replace("/", "_").replace("\\", "_").replace("\x00", "").replace(" ", "_")
    filename = filename.replace("..", "_")
    if len(filename) > 100:
        name, ext = filename.rsplit(".", 1) if "." in filename else (filename, "")
        filename = f"{name[:90]}.{ext}" if ext else name[:100]
    return filename or "file"


class AttachmentStorage:
    """
    Organization-namespaced object storage.

    Args:
        client: boto3 S3 client
        bucket_name: Target bucket
        url_expiry: Presigned URL lifetime in seconds
    """

    def __init__(self, client: Any, bucket_name: str, url_expiry: int = 3600):
        self.s3_client = client
        self.bucket_name = bucket_name
        self.url_expiry = url_expiry

    @classmethod
    def from_settings(cls) -> "AttachmentStorage":
        client = boto3.client(
            "s3",
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION,
            endpoint_url=settings.S3_ENDPOINT,
        )
        return cls(client, settings.S3_BUCKET_NAME, settings.S3_PRESIGNED_URL_EXPIRY)

    @staticmethod
    def prefix_for(org_id: str) -> str:
        return f"assets/{org_id}/"

    def owns(self, org_id: str, ref: str) -> bool:
        """Whether ``ref`` lies in the organization's key space."""
        return isinstance(ref, str) and ref.startswith(self.prefix_for(org_id)) and ".." not in ref

    async def upload(
        self,
        org_id: str,
        data: bytes,
        content_type: str,
        filename: Optional[str] = None,
    ) -> str:
        """
        Store one attachment.

        Returns:
            Object key to keep on the asset

        Raises:
            ValidationError: Empty or oversized payload
            S3Error: Upload rejected by storage
        """
        if not data:
            raise ValidationError(message="Attachment is empty")
        if len(data) > MAX_ATTACHMENT_SIZE:
            raise ValidationError(
                message="Attachment exceeds maximum size",
                size=len(data),
                max_size=MAX_ATTACHMENT_SIZE,
            )

        key = f"{self.prefix_for(org_id)}{uuid.uuid4().hex}"
        if filename:
            key = f"{key}_{_sanitize_filename(filename)}"

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type or "application/octet-stream",
                Metadata={"org_id": str(org_id)},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Attachment upload failed for org {org_id}: {e}")
            raise S3Error(message="Failed to upload attachment", error=str(e))

        logger.info(f"Uploaded attachment {key}")
        return key

    async def delete(self, org_id: str, ref: str) -> None:
        """
        Delete one attachment. Missing objects are not an error.

        Raises:
            ValidationError: Reference outside the organization's key space
            S3Error: Delete rejected by storage
        """
        if not self.owns(org_id, ref):
            raise ValidationError(message="Attachment does not belong to this organization")
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=ref)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Attachment delete failed for {ref}: {e}")
            raise S3Error(message="Failed to delete attachment", error=str(e))

        logger.info(f"Deleted attachment {ref}")

    async def url_for(self, org_id: str, ref: str) -> str:
        """Presigned download URL for an attachment."""
        if not self.owns(org_id, ref):
            raise ValidationError(message="Attachment does not belong to this organization")
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": ref},
                ExpiresIn=self.url_expiry,
            )
        except (ClientError, BotoCoreError) as e:
            raise S3Error(message="Failed to generate attachment URL", error=str(e))
