"""
HTTP routes: the JSON API under the configured prefix and the public HTML
pages.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests
from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile
from fastapi.responses import HTMLResponse

from fanslink.auth import AuthProvider
from fanslink.cms import CmsClient, load_site_shell
from fanslink.config import get_settings
from fanslink.dependencies import (
    get_auth_provider,
    get_cms_client,
    get_current_uid,
    get_image_service,
    get_link_service,
    get_profile_service,
)
from fanslink.errors import (
    BackendError,
    DocumentNotFoundError,
    ImageFetchError,
    InvalidImageError,
    LinkValidationError,
    UsernameTakenError,
)
from fanslink.links import LinkService, validate_url
from fanslink.media import fetch_utils
from fanslink.pages import render_home_page, render_message_page, render_profile_page
from fanslink.profiles import LookupStatus, ProfileService
from fanslink.schemas import (
    AddLinkRequest,
    GetUserDataRequest,
    HasUsernameResponse,
    ImageUrlResponse,
    ImportImageRequest,
    LinkActiveRequest,
    LinkFieldRequest,
    LinksResponse,
    PasswordResetRequest,
    PasswordResetResponse,
    ProfileUpdateRequest,
    ReplaceLinksRequest,
    SubscriptionStatusResponse,
    TemplatesResponse,
    UrlMetadataResponse,
    UserDataResponse,
    UsernameAvailabilityResponse,
    UsernameRequest,
    UserResponse,
)
from fanslink.uploads import ImageService

logger = logging.getLogger(__name__)

router = APIRouter()
page_router = APIRouter()


def _require_url(url: str) -> None:
    if not validate_url(url) or not url.lower().startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="A valid http(s) URL is required")


def _links_response(action):
    """Run a LinkService call, mapping its errors onto HTTP status codes."""
    try:
        return LinksResponse(links=action())
    except LinkValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="User document does not exist")
    except BackendError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/get-user-data", response_model=Optional[UserDataResponse])
def get_user_data(
    payload: GetUserDataRequest,
    profiles: ProfileService = Depends(get_profile_service),
):
    lookup = profiles.resolve_public_profile(payload.username)
    if lookup.status == LookupStatus.BACKEND_ERROR:
        raise HTTPException(status_code=503, detail="User lookup is unavailable")
    if not lookup.found:
        return None
    return UserDataResponse(user=lookup.profile.as_dict())


@router.get("/downloadImage")
def download_image(url: str = Query(..., min_length=1)):
    """
    Proxies an external image so the browser can read it same-origin before
    re-uploading it.
    """
    _require_url(url)
    try:
        data, content_type = fetch_utils.fetch_image_bytes(
            url, timeout=get_settings().request_timeout_seconds
        )
    except ImageFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return Response(content=data, media_type=content_type)


@router.get("/url-metadata", response_model=UrlMetadataResponse)
def url_metadata(url: str = Query(..., min_length=1)):
    _require_url(url)
    try:
        metadata = fetch_utils.fetch_url_metadata(
            url, timeout=get_settings().request_timeout_seconds
        )
    except requests.RequestException as e:
        logger.warning("Could not fetch metadata for %s: %s", url, e)
        raise HTTPException(status_code=502, detail="Could not fetch URL")
    return UrlMetadataResponse(**metadata.as_document())


@router.get(
    "/usernames/{username}/availability", response_model=UsernameAvailabilityResponse
)
def username_availability(
    username: str, profiles: ProfileService = Depends(get_profile_service)
):
    try:
        taken = profiles.is_username_taken(username)
    except BackendError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return UsernameAvailabilityResponse(username=username, taken=taken)


@router.post("/password-reset", response_model=PasswordResetResponse, status_code=202)
def password_reset(
    payload: PasswordResetRequest, auth: AuthProvider = Depends(get_auth_provider)
):
    try:
        auth.send_password_reset(payload.email)
    except BackendError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return PasswordResetResponse()


@router.get("/templates", response_model=TemplatesResponse)
def list_templates(profiles: ProfileService = Depends(get_profile_service)):
    try:
        return TemplatesResponse(templates=profiles.list_templates())
    except BackendError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/me", response_model=UserResponse)
def get_me(
    uid: str = Depends(get_current_uid),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        return UserResponse(uid=uid, user=profiles.require_user(uid))
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="No such document!")
    except BackendError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.patch("/me", response_model=UserResponse)
def update_me(
    payload: ProfileUpdateRequest,
    uid: str = Depends(get_current_uid),
    profiles: ProfileService = Depends(get_profile_service),
):
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No profile fields supplied")
    try:
        return UserResponse(uid=uid, user=profiles.update_profile(uid, fields))
    except BackendError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/me/has-username", response_model=HasUsernameResponse)
def has_username(
    uid: str = Depends(get_current_uid),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        return HasUsernameResponse(has_username=profiles.has_username(uid))
    except BackendError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.put("/me/username", response_model=UsernameAvailabilityResponse)
def claim_username(
    payload: UsernameRequest,
    uid: str = Depends(get_current_uid),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        profiles.claim_username(uid, payload.username)
    except UsernameTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except BackendError as e:
        raise HTTPException(status_code=502, detail="Username update failed") from e
    return UsernameAvailabilityResponse(username=payload.username, taken=True)


@router.get("/me/subscription", response_model=SubscriptionStatusResponse)
def subscription_status(
    uid: str = Depends(get_current_uid),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        return SubscriptionStatusResponse(active=profiles.check_subscription_status(uid))
    except BackendError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/me/profile-picture", response_model=ImageUrlResponse)
async def upload_profile_picture(
    file: UploadFile = File(...),
    uid: str = Depends(get_current_uid),
    images: ImageService = Depends(get_image_service),
):
    data = await file.read()
    try:
        url = images.update_profile_picture(
            uid, file.filename or "", data, file.content_type
        )
    except InvalidImageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BackendError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ImageUrlResponse(url=url)


@router.post("/me/images", response_model=ImageUrlResponse)
async def upload_image(
    file: UploadFile = File(...),
    uid: str = Depends(get_current_uid),
    images: ImageService = Depends(get_image_service),
):
    data = await file.read()
    try:
        url = images.upload_image(uid, file.filename or "", data)
    except InvalidImageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BackendError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ImageUrlResponse(url=url)


@router.post("/me/images/import", response_model=ImageUrlResponse)
def import_image(
    payload: ImportImageRequest,
    uid: str = Depends(get_current_uid),
    images: ImageService = Depends(get_image_service),
):
    _require_url(payload.url)
    try:
        url = images.import_remote_image(uid, payload.url)
    except (ImageFetchError, BackendError) as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ImageUrlResponse(url=url)


@router.get("/me/links", response_model=LinksResponse)
def list_links(
    uid: str = Depends(get_current_uid),
    links: LinkService = Depends(get_link_service),
):
    return _links_response(lambda: links.list_links(uid))


@router.post("/me/links", response_model=LinksResponse, status_code=201)
def add_link(
    payload: AddLinkRequest,
    uid: str = Depends(get_current_uid),
    links: LinkService = Depends(get_link_service),
):
    return _links_response(
        lambda: links.add_link(uid, payload.title, payload.link, payload.url_metadata)
    )


@router.put("/me/links", response_model=LinksResponse)
def replace_links(
    payload: ReplaceLinksRequest,
    uid: str = Depends(get_current_uid),
    links: LinkService = Depends(get_link_service),
):
    return _links_response(lambda: links.replace_links(uid, payload.links))


@router.patch("/me/links/{link_id}/active", response_model=LinksResponse)
def set_link_active(
    link_id: int,
    payload: LinkActiveRequest,
    uid: str = Depends(get_current_uid),
    links: LinkService = Depends(get_link_service),
):
    return _links_response(lambda: links.set_link_active(uid, link_id, payload.active))


@router.patch("/me/links/{link_id}", response_model=LinksResponse)
def set_link_field(
    link_id: int,
    payload: LinkFieldRequest,
    uid: str = Depends(get_current_uid),
    links: LinkService = Depends(get_link_service),
):
    return _links_response(
        lambda: links.set_link_field(uid, link_id, payload.field, payload.value)
    )


@router.delete("/me/links/{link_id}", response_model=LinksResponse)
def delete_link(
    link_id: int,
    uid: str = Depends(get_current_uid),
    links: LinkService = Depends(get_link_service),
):
    return _links_response(lambda: links.delete_link(uid, link_id))


@page_router.get("/", response_class=HTMLResponse)
def home_page(cms: CmsClient = Depends(get_cms_client)):
    shell = load_site_shell(cms)
    return HTMLResponse(render_home_page(shell, site_url=get_settings().site_url))


@page_router.get("/user/{username}", response_class=HTMLResponse)
def public_profile_page(
    username: str,
    profiles: ProfileService = Depends(get_profile_service),
    cms: CmsClient = Depends(get_cms_client),
):
    site_url = get_settings().site_url
    lookup = profiles.resolve_public_profile(username)
    shell = load_site_shell(cms)
    if lookup.found:
        return HTMLResponse(render_profile_page(lookup.profile, shell, site_url=site_url))
    if lookup.status == LookupStatus.BACKEND_ERROR:
        return HTMLResponse(
            render_message_page(
                shell,
                site_url=site_url,
                heading="Temporarily unavailable",
                message="This profile cannot be loaded right now. Please try again.",
            ),
            status_code=503,
        )
    return HTMLResponse(
        render_message_page(
            shell,
            site_url=site_url,
            heading="Not found",
            message="This page could not be found.",
        ),
        status_code=404,
    )
