import logging
import os
import re
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from coach_portal.config import settings
from coach_portal.errors import DocumentValidationError
from coach_portal.models.form_configuration import DocumentRequirement
from coach_portal.models.form_submission import FormSubmission
from coach_portal.models.user import User, UserRole

logger = logging.getLogger(__name__)


def sanitize_file_name(file_name: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9.-]", "_", file_name)
    cleaned = re.sub(r"_{2,}", "_", cleaned)
    return cleaned.lower()


def get_document_storage_ids(user: User, context_client_id: Optional[str] = None) -> tuple[str, str]:
    """(coach id, client id) used as the first two storage path segments."""
    if user.role == UserRole.CLIENT:
        return user.coach_id or "default-coach", user.id
    if user.role == UserRole.COACH:
        return user.id, context_client_id or "current-client"
    if user.role == UserRole.ADMIN:
        if context_client_id:
            return "admin-as-coach", context_client_id
        return "admin", "admin-client"
    return "guest", "guest-client"


def client_id_from_submission(submission: FormSubmission, user: User) -> Optional[str]:
    """A coach uploading on behalf of a client stores under that client's id."""
    if user.role in (UserRole.COACH, UserRole.ADMIN) and submission.user_id and submission.user_id != user.id:
        return submission.user_id
    return None


def applicant_folder(is_dual: bool, applicant: Optional[str] = None) -> str:
    if not is_dual:
        return "single"
    return applicant if applicant in ("applicant1", "applicant2") else "applicant1"


def build_document_key(coach_id: str, client_id: str, form_config_id: str, applicant: str,
                       document_id: str, file_name: str) -> str:
    return f"{coach_id}/{client_id}/{form_config_id}/{applicant}/{document_id}_{sanitize_file_name(file_name)}"


def _type_matches(accepted: str, file_name: str, content_type: Optional[str]) -> bool:
    accepted = accepted.strip().lower()
    if not accepted:
        return False
    if "/" in accepted:
        if not content_type:
            return False
        content_type = content_type.lower()
        if accepted.endswith("/*"):
            return content_type.startswith(accepted[:-1])
        return content_type == accepted
    extension = os.path.splitext(file_name)[1].lower().lstrip(".")
    return extension == accepted.lstrip(".")


def validate_upload(requirement: DocumentRequirement, file_name: str, content_type: Optional[str],
                    size_bytes: int, t) -> None:
    """Raise DocumentValidationError when the file breaks the requirement's type or size limit."""
    if requirement.accepted_types and not any(
        _type_matches(accepted, file_name, content_type) for accepted in requirement.accepted_types
    ):
        raise DocumentValidationError(t("forms.documents.invalidType", {"name": requirement.name}))

    limit_mb = min(requirement.max_size or settings.max_upload_mb, settings.max_upload_mb)
    if size_bytes > limit_mb * 1024 * 1024:
        raise DocumentValidationError(t("forms.documents.tooLarge", {"size": f"{limit_mb:g}"}))


class DocumentStorage:
    """Required-document uploads in MinIO S3-compatible storage."""

    _instance = None

    def __init__(self):
        self.bucket = settings.minio_bucket

        self.client = boto3.client(
            "s3",
            endpoint_url=settings.minio_endpoint,
            aws_access_key_id=settings.minio_access_key,
            aws_secret_access_key=settings.minio_secret_key,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"}
            ),
            region_name="us-east-1"
        )

        self._ensure_bucket_exists()

    @classmethod
    def get_instance(cls) -> "DocumentStorage":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _ensure_bucket_exists(self):
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in ("404", "NoSuchBucket"):
                try:
                    self.client.create_bucket(Bucket=self.bucket)
                    logger.info(f"Created MinIO bucket: {self.bucket}")
                except ClientError as create_error:
                    logger.warning(f"Failed to create MinIO bucket: {create_error}")
            else:
                logger.warning(f"Failed to check MinIO bucket: {e}")

    def upload_document(self, key: str, content: bytes, content_type: Optional[str] = None) -> tuple[str, int]:
        """Store the file under `key`. Returns (key, size in bytes)."""
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=content_type or "application/octet-stream",
            )
            logger.info(f"Uploaded document to MinIO: {key} ({len(content)} bytes)")
            return key, len(content)
        except ClientError as e:
            logger.error(f"Failed to upload document to MinIO: {e}")
            raise

    def delete_document(self, key: str) -> bool:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            logger.info(f"Deleted document from MinIO: {key}")
            return True
        except ClientError as e:
            logger.error(f"Failed to delete document from MinIO: {e}")
            return False

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError:
            return False
