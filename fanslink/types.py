"""
Dataclasses for the documents fanslink reads and writes.

Documents are stored with camelCase keys; the dataclasses use snake_case and
convert at the edges with `as_document` / `from_document`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import StrEnum
from typing import Any, List, Optional, Union

from dacite import Config, from_dict

from fanslink.json_utils import snake_to_camel, strip_none

DEFAULT_LINK_LAYOUT = "classic"
DEFAULT_LINK_TYPE = "external"


class MediaType(StrEnum):
    WEBSITE = "website"
    IMAGE = "image"
    VIDEO = "video"


class SubscriptionStatus(StrEnum):
    TRIALING = "trialing"
    ACTIVE = "active"
    CANCELED = "canceled"


@dataclass
class WebsiteMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    site_name: Optional[str] = None
    favicon: Optional[str] = None
    extra: dict = field(default_factory=dict)


@dataclass
class ImageMetadata:
    url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    alt: Optional[str] = None
    extra: dict = field(default_factory=dict)


@dataclass
class VideoMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    url: Optional[str] = None
    provider: Optional[str] = None
    embed_url: Optional[str] = None
    extra: dict = field(default_factory=dict)


@dataclass
class OpaqueMetadata:
    """Metadata for a media type we have no schema for; kept verbatim."""

    values: dict = field(default_factory=dict)


MetadataDetails = Union[WebsiteMetadata, ImageMetadata, VideoMetadata, OpaqueMetadata]

_DETAILS_BY_MEDIA_TYPE = {
    MediaType.WEBSITE: WebsiteMetadata,
    MediaType.IMAGE: ImageMetadata,
    MediaType.VIDEO: VideoMetadata,
}


@dataclass
class LinkMetadata:
    """Link preview data, tagged by `media_type`."""

    media_type: Optional[str]
    details: MetadataDetails

    @classmethod
    def from_document(cls, data: dict) -> "LinkMetadata":
        media_type = data.get("mediaType")
        raw = data.get("metadata")
        if not isinstance(raw, dict):
            raw = {}
        details_cls = (
            _DETAILS_BY_MEDIA_TYPE.get(media_type) if isinstance(media_type, str) else None
        )
        if details_cls is None:
            return cls(media_type=media_type, details=OpaqueMetadata(values=dict(raw)))

        # Only the exact stored spelling counts as a known field; any other
        # key is kept verbatim in `extra`.
        known_names = {
            snake_to_camel(f.name): f.name for f in fields(details_cls) if f.name != "extra"
        }
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in raw.items():
            if key in known_names:
                known[known_names[key]] = value
            else:
                extra[key] = value
        known["extra"] = extra
        details = from_dict(
            data_class=details_cls, data=known, config=Config(check_types=False)
        )
        return cls(media_type=media_type, details=details)

    def as_document(self) -> dict:
        if isinstance(self.details, OpaqueMetadata):
            inner = dict(self.details.values)
        else:
            values = asdict(self.details)
            extra = values.pop("extra", {}) or {}
            inner = {snake_to_camel(key): value for key, value in values.items()}
            inner.update(extra)
        document = {"mediaType": self.media_type, "metadata": strip_none(inner)}
        return strip_none(document)

    @property
    def preview_image(self) -> Optional[str]:
        if isinstance(self.details, WebsiteMetadata):
            value = self.details.image
        elif isinstance(self.details, ImageMetadata):
            value = self.details.url
        elif isinstance(self.details, VideoMetadata):
            value = self.details.thumbnail
        else:
            value = self.details.values.get("image")
        return value if isinstance(value, str) else None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass
class Link:
    id: int
    title: str
    link: str
    active: bool = False
    metadata: Optional[LinkMetadata] = None
    layout: str = DEFAULT_LINK_LAYOUT
    link_type: str = DEFAULT_LINK_TYPE

    def as_document(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "link": self.link,
            "active": self.active,
            "metadata": self.metadata.as_document() if self.metadata else {},
            "layout": self.layout,
            "linkType": self.link_type,
        }

    @classmethod
    def from_document(cls, data: dict) -> "Link":
        """
        Reads a stored link. Replace-all and set-field write whatever the
        editor sends, so text fields are coerced to strings here.
        """
        metadata = data.get("metadata")
        return cls(
            id=data.get("id"),
            title=_text(data.get("title")),
            link=_text(data.get("link")),
            active=bool(data.get("active", False)),
            metadata=(
                LinkMetadata.from_document(metadata)
                if isinstance(metadata, dict) and metadata
                else None
            ),
            layout=_text(data.get("layout")) or DEFAULT_LINK_LAYOUT,
            link_type=_text(data.get("linkType")) or DEFAULT_LINK_TYPE,
        )


@dataclass
class PublicProfile:
    """The subset of a user record shown on the public page."""

    username: str
    photo_url: Optional[str] = None
    background: Optional[str] = None
    color: Optional[str] = None
    links: List[Link] = field(default_factory=list)

    @classmethod
    def from_user_document(cls, data: dict) -> "PublicProfile":
        stored = data.get("links")
        links = [
            Link.from_document(link)
            for link in (stored if isinstance(stored, list) else [])
            if isinstance(link, dict) and link.get("active")
        ]
        return cls(
            username=data.get("username") or "",
            # Older documents carry the upload URL as profilePicture.
            photo_url=data.get("photoUrl") or data.get("profilePicture"),
            background=data.get("background"),
            color=data.get("color"),
            links=links,
        )

    def as_dict(self) -> dict:
        return {
            "username": self.username,
            "photoUrl": self.photo_url,
            "background": self.background,
            "color": self.color,
            "links": [link.as_document() for link in self.links],
        }


@dataclass
class Subscription:
    status: str
    cancel_at_period_end: bool = False

    @classmethod
    def from_document(cls, data: dict) -> "Subscription":
        return from_dict(
            data_class=cls,
            data={
                "status": data.get("status") or "",
                "cancel_at_period_end": bool(data.get("cancel_at_period_end")),
            },
        )
