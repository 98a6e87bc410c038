from __future__ import annotations

import io
import logging
from typing import Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup
from PIL import Image, UnidentifiedImageError

from fanslink.errors import ImageFetchError
from fanslink.media.image_utils import detect_image_format, mime_type_for_format
from fanslink.types import (
    ImageMetadata,
    LinkMetadata,
    MediaType,
    VideoMetadata,
    WebsiteMetadata,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds
MAX_REMOTE_IMAGE_BYTES = 10 * 1024 * 1024
MAX_HTML_BYTES = 2 * 1024 * 1024
CHUNK_SIZE = 64 * 1024
USER_AGENT = "fanslink/0.1 (+https://fansl.ink)"


def _get(url: str, timeout: float) -> requests.Response:
    response = requests.get(
        url, timeout=timeout, headers={"User-Agent": USER_AGENT}, stream=True
    )
    try:
        response.raise_for_status()
    except requests.RequestException:
        response.close()
        raise
    return response


def _declared_length(response: requests.Response) -> Optional[int]:
    try:
        return int(response.headers.get("Content-Length", ""))
    except ValueError:
        return None


def _read_limited(response: requests.Response, limit: int) -> bytes:
    """Reads at most `limit + 1` bytes so callers can detect an oversized body."""
    chunks = []
    size = 0
    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
        chunks.append(chunk)
        size += len(chunk)
        if size > limit:
            break
    return b"".join(chunks)[: limit + 1]


def _content_type(response: requests.Response) -> str:
    return response.headers.get("Content-Type", "").split(";")[0].strip().lower()


def fetch_image_bytes(url: str, timeout: float = REQUEST_TIMEOUT) -> tuple[bytes, str]:
    """
    Fetches an external image on behalf of the browser.

    Args:
        url (str): The image URL.
        timeout (float): Seconds to wait for the remote server.

    Returns:
        tuple[bytes, str]: The image bytes and their content type.

    Raises:
        ImageFetchError: If the request fails, the body is too large or it is
            not an image.
    """
    too_large = f"Image at {url} is larger than {MAX_REMOTE_IMAGE_BYTES} bytes"
    try:
        response = _get(url, timeout)
        try:
            declared = _declared_length(response)
            if declared is not None and declared > MAX_REMOTE_IMAGE_BYTES:
                raise ImageFetchError(too_large)
            data = _read_limited(response, MAX_REMOTE_IMAGE_BYTES)
        finally:
            response.close()
    except requests.RequestException as e:
        logger.error("Error downloading image %s: %s", url, e)
        raise ImageFetchError(f"Could not fetch {url}") from e

    if len(data) > MAX_REMOTE_IMAGE_BYTES:
        raise ImageFetchError(too_large)

    content_type = _content_type(response)
    if not content_type.startswith("image/"):
        # Some hosts serve images as octet-stream; trust the bytes instead.
        detected = detect_image_format(data)
        if not detected:
            raise ImageFetchError(f"URL does not point to an image: {url}")
        content_type = mime_type_for_format(detected)
    return data, content_type


def _meta(soup: BeautifulSoup, *names: str) -> Optional[str]:
    for name in names:
        tag = soup.find("meta", attrs={"property": name}) or soup.find(
            "meta", attrs={"name": name}
        )
        if tag and tag.get("content"):
            return tag["content"].strip()
    return None


def parse_html_metadata(html: str | bytes, base_url: str) -> LinkMetadata:
    """
    Builds link preview metadata from OpenGraph / Twitter card tags, falling
    back to the document title and favicon.
    """
    soup = BeautifulSoup(html, "html.parser")
    title = _meta(soup, "og:title", "twitter:title")
    if not title and soup.title and soup.title.string:
        title = soup.title.string.strip()
    description = _meta(soup, "og:description", "twitter:description", "description")
    image = _meta(soup, "og:image", "og:image:url", "twitter:image")
    site_name = _meta(soup, "og:site_name")
    canonical = _meta(soup, "og:url") or base_url
    if image:
        image = urljoin(base_url, image)

    og_type = (_meta(soup, "og:type") or "").lower()
    video_url = _meta(soup, "og:video:secure_url", "og:video:url", "og:video")
    if og_type.startswith("video") or video_url:
        return LinkMetadata(
            media_type=MediaType.VIDEO.value,
            details=VideoMetadata(
                title=title,
                description=description,
                thumbnail=image,
                url=canonical,
                provider=site_name,
                embed_url=urljoin(base_url, video_url) if video_url else None,
            ),
        )

    favicon = None
    icon = soup.find("link", rel=lambda rel: rel and "icon" in rel)
    if icon and icon.get("href"):
        favicon = urljoin(base_url, icon["href"])
    return LinkMetadata(
        media_type=MediaType.WEBSITE.value,
        details=WebsiteMetadata(
            title=title,
            description=description,
            image=image,
            url=canonical,
            site_name=site_name,
            favicon=favicon,
        ),
    )


def _image_metadata(url: str, data: bytes) -> LinkMetadata:
    width = height = None
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, OSError):
        logger.warning("Could not read image dimensions for %s", url)
    return LinkMetadata(
        media_type=MediaType.IMAGE.value,
        details=ImageMetadata(url=url, width=width, height=height),
    )


def fetch_url_metadata(url: str, timeout: float = REQUEST_TIMEOUT) -> LinkMetadata:
    """
    Fetches `url` and describes it for a link preview.

    Raises:
        requests.RequestException: If the page cannot be fetched.
    """
    response = _get(url, timeout)
    try:
        content_type = _content_type(response)
        if content_type.startswith("image/"):
            # The header is enough for the dimensions of a truncated image.
            return _image_metadata(
                url, _read_limited(response, MAX_REMOTE_IMAGE_BYTES)
            )
        if content_type in ("text/html", "application/xhtml+xml", ""):
            return parse_html_metadata(
                _read_limited(response, MAX_HTML_BYTES), response.url or url
            )
    finally:
        response.close()
    return LinkMetadata(
        media_type=MediaType.WEBSITE.value, details=WebsiteMetadata(url=url)
    )
