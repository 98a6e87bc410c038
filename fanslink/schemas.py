"""
Pydantic schemas for the fanslink API.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from fanslink.constants import LINK_TITLE_MAX_LENGTH, URL_MAX_LENGTH, USERNAME_MAX_LENGTH


class GetUserDataRequest(BaseModel):
    username: str = Field(..., max_length=USERNAME_MAX_LENGTH)


class UserDataResponse(BaseModel):
    user: dict


class UsernameRequest(BaseModel):
    username: str = Field(
        ..., min_length=1, max_length=USERNAME_MAX_LENGTH, pattern=r"^\S+$"
    )


class UsernameAvailabilityResponse(BaseModel):
    username: str
    taken: bool


class HasUsernameResponse(BaseModel):
    has_username: bool


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    background: Optional[str] = Field(default=None, max_length=512)
    color: Optional[str] = Field(default=None, max_length=64)


class UserResponse(BaseModel):
    uid: str
    user: dict


class AddLinkRequest(BaseModel):
    """Fields are optional here so the link service reports what is missing."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, max_length=LINK_TITLE_MAX_LENGTH)
    link: Optional[str] = Field(default=None, max_length=URL_MAX_LENGTH)
    url_metadata: Optional[dict] = Field(default=None, alias="urlMetaData")


class ReplaceLinksRequest(BaseModel):
    links: list[dict]


class LinkActiveRequest(BaseModel):
    active: bool


class LinkFieldRequest(BaseModel):
    field: str = Field(..., min_length=1, max_length=64)
    value: Any = None


class LinksResponse(BaseModel):
    links: list[dict]


class ImageUrlResponse(BaseModel):
    url: str


class ImportImageRequest(BaseModel):
    url: str = Field(..., max_length=URL_MAX_LENGTH)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetResponse(BaseModel):
    status: str = "sent"


class SubscriptionStatusResponse(BaseModel):
    active: bool


class TemplatesResponse(BaseModel):
    templates: list[dict]


class UrlMetadataResponse(BaseModel):
    mediaType: Optional[str] = None
    metadata: dict
