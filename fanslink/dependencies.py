"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from typing import Optional

import firebase_admin
from fastapi import Depends, Header, HTTPException
from firebase_admin import credentials

from fanslink.auth import AuthProvider, FirebaseAuthProvider, InMemoryAuthProvider
from fanslink.cms import CmsClient, InMemoryCmsClient, PrismicClient
from fanslink.config import Settings, get_settings
from fanslink.db import DbClient, FirestoreDbClient, InMemoryDbClient, SqlDbClient
from fanslink.errors import BackendError, InvalidTokenError
from fanslink.links import LinkService
from fanslink.profiles import ProfileService
from fanslink.storage import (
    FirebaseStorageClient,
    InMemoryStorageClient,
    S3StorageClient,
    StorageClient,
)
from fanslink.uploads import ImageService

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_auth_provider: AuthProvider | None = None
_cms_client: CmsClient | None = None


def _use_firebase(settings: Settings) -> bool:
    return not settings.use_in_memory_backends and bool(settings.firebase_project_id)


def _ensure_firebase_app(settings: Settings) -> None:
    if firebase_admin._apps:
        return
    cred = (
        credentials.Certificate(settings.firebase_credentials_path)
        if settings.firebase_credentials_path
        else credentials.ApplicationDefault()
    )
    options = {"projectId": settings.firebase_project_id}
    if settings.firebase_storage_bucket:
        options["storageBucket"] = settings.firebase_storage_bucket
    firebase_admin.initialize_app(cred, options)
    logger.info("Initialized Firebase app for project %s", settings.firebase_project_id)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so in-memory state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if _use_firebase(settings):
        _ensure_firebase_app(settings)
        _db_client = FirestoreDbClient()
    elif settings.database_url and not settings.use_in_memory_backends:
        _db_client = SqlDbClient(settings.database_url)
    else:
        _db_client = InMemoryDbClient()
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _storage_client = InMemoryStorageClient()
    elif settings.firebase_storage_bucket and _use_firebase(settings):
        _ensure_firebase_app(settings)
        _storage_client = FirebaseStorageClient(settings.firebase_storage_bucket)
    elif settings.s3_bucket:
        _storage_client = S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.s3_public_base_url,
        )
    else:
        _storage_client = InMemoryStorageClient()
    return _storage_client


def get_auth_provider() -> AuthProvider:
    global _auth_provider
    if _auth_provider:
        return _auth_provider

    settings = get_settings()
    if _use_firebase(settings):
        _ensure_firebase_app(settings)
        _auth_provider = FirebaseAuthProvider(
            web_api_key=settings.firebase_web_api_key,
            timeout=settings.request_timeout_seconds,
        )
    else:
        _auth_provider = InMemoryAuthProvider()
    return _auth_provider


def get_cms_client() -> CmsClient:
    global _cms_client
    if _cms_client:
        return _cms_client

    settings = get_settings()
    if settings.prismic_repository and not settings.use_in_memory_backends:
        _cms_client = PrismicClient(
            repository=settings.prismic_repository,
            access_token=settings.prismic_access_token,
            timeout=settings.request_timeout_seconds,
        )
    else:
        _cms_client = InMemoryCmsClient()
    return _cms_client


def reset_clients() -> None:
    """Drop cached clients so the next request rebuilds them (tests)."""
    global _db_client, _storage_client, _auth_provider, _cms_client
    _db_client = None
    _storage_client = None
    _auth_provider = None
    _cms_client = None


def get_link_service(db: DbClient = Depends(get_db_client)) -> LinkService:
    return LinkService(db)


def get_profile_service(db: DbClient = Depends(get_db_client)) -> ProfileService:
    return ProfileService(db)


def get_image_service(
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
) -> ImageService:
    settings = get_settings()
    return ImageService(
        db,
        storage,
        max_size_mb=settings.image_max_size_mb,
        max_dimension=settings.image_max_dimension,
        fetch_timeout=settings.request_timeout_seconds,
    )


def get_current_uid(
    authorization: Optional[str] = Header(None),
    auth: AuthProvider = Depends(get_auth_provider),
) -> str:
    """Resolve `Authorization: Bearer <ID token>` to the signed-in uid."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        return auth.verify_token(token.strip())
    except InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
    except BackendError as e:
        raise HTTPException(status_code=503, detail=str(e))
