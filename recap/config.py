#!/usr/bin/env python3

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./recap.db"

    # Object storage. "local" keeps blobs on disk, "s3" talks to any S3-compatible endpoint.
    storage_backend: str = "local"
    storage_bucket: str = "uploads"
    local_storage_root: str = "./storage"
    storage_timeout_seconds: int = 10

    # AWS / S3-compatible settings
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = "us-east-1"  # Default region
    s3_endpoint_url: Optional[str] = None  # e.g. Supabase, R2 or MinIO endpoint

    session_secret: Optional[str] = None
    external_hostname: str = "localhost"

    allow_upload_delete: bool = True
    default_folder_color: str = "#3B82F6"

    class Config:
        env_file = ".env"


settings = Settings()
