from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend REST API
    api_base_url: str = "http://localhost:3000/api"
    api_timeout: float = 10.0

    # Localization
    default_language: str = "en"
    supported_languages: list[str] = ["en", "de", "es"]

    # Branding used in exported documents
    company_name: str = "Your Wealth Coach"
    pdf_footer_caption: str = "Your Wealth Coach - Confidential Form Submission"
    logo_path: Optional[str] = None

    # Navigation targets returned to the browser
    forms_list_path: str = "/dashboard/forms"
    document_upload_path: str = "/dashboard/forms/{submission_id}/documents"

    # Pusher/Soketi config for user notifications
    notifications_enabled: bool = True
    pusher_app_id: str = "100001"
    pusher_app_key: str = "coach-key"
    pusher_app_secret: str = "coach-secret"
    pusher_host: str = "websocket"
    pusher_port: int = 6001

    # MinIO config for required document uploads
    minio_endpoint: str = "http://minio:9000"
    minio_access_key: str = "coach"
    minio_secret_key: str = "coach-secret-key"
    minio_bucket: str = "coach-documents"
    max_upload_mb: int = 10

    # In-memory form sessions
    session_timeout_seconds: int = 1800

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
