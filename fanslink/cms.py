"""
Headless CMS (Prismic) access for the content shell around every page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import requests

logger = logging.getLogger(__name__)

PRISMIC_API_URL = "https://{repository}.cdn.prismic.io/api/v2"


class CmsClient(Protocol):
    def get_single(self, document_type: str) -> Optional[dict]:
        ...

    def get_by_uid(self, document_type: str, uid: str) -> Optional[dict]:
        ...


@dataclass
class InMemoryCmsClient:
    """Documents keyed by (type, uid); singletons use uid None."""

    documents: dict = field(default_factory=dict)

    def add(self, document_type: str, data: dict, uid: Optional[str] = None) -> None:
        self.documents[(document_type, uid)] = {
            "type": document_type,
            "uid": uid,
            "data": data,
        }

    def get_single(self, document_type: str) -> Optional[dict]:
        return self.documents.get((document_type, None))

    def get_by_uid(self, document_type: str, uid: str) -> Optional[dict]:
        return self.documents.get((document_type, uid))


@dataclass
class PrismicClient:
    """Minimal Prismic REST v2 client: resolves the master ref, then queries."""

    repository: str
    access_token: Optional[str] = None
    timeout: float = 30

    @property
    def api_url(self) -> str:
        return PRISMIC_API_URL.format(repository=self.repository)

    def _params(self, **params: Any) -> dict:
        if self.access_token:
            params["access_token"] = self.access_token
        return params

    def master_ref(self) -> str:
        response = requests.get(self.api_url, params=self._params(), timeout=self.timeout)
        response.raise_for_status()
        for ref in response.json().get("refs", []):
            if ref.get("isMasterRef"):
                return ref["ref"]
        raise ValueError(f"Prismic repository {self.repository} has no master ref")

    def _query_first(self, predicate: str) -> Optional[dict]:
        response = requests.get(
            f"{self.api_url}/documents/search",
            params=self._params(ref=self.master_ref(), q=f"[{predicate}]", pageSize=1),
            timeout=self.timeout,
        )
        response.raise_for_status()
        results = response.json().get("results") or []
        return results[0] if results else None

    def get_single(self, document_type: str) -> Optional[dict]:
        return self._query_first(f'[at(document.type,"{document_type}")]')

    def get_by_uid(self, document_type: str, uid: str) -> Optional[dict]:
        return self._query_first(f'[at(my.{document_type}.uid,"{uid}")]')


@dataclass
class NavigationLink:
    label: str
    url: str


@dataclass
class SiteShell:
    """SEO metadata, navigation and analytics rendered around every page."""

    page_title: str = "fanslink"
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    no_index: bool = False
    no_follow: bool = False
    favicon_url: Optional[str] = None
    og_image_url: Optional[str] = None
    show_open_graph: bool = False
    analytics_tag: Optional[str] = None
    navigation: list[NavigationLink] = field(default_factory=list)


def _text(value: Any) -> str:
    """Flattens Prismic rich text (a list of blocks) or returns plain strings."""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return " ".join(
            block.get("text", "") for block in value if isinstance(block, dict)
        ).strip()
    return ""


def _url(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("url") or None
    return None


def _navigation_links(navigation: Optional[dict]) -> list[NavigationLink]:
    data = (navigation or {}).get("data") or {}
    links = []
    for item in data.get("links") or []:
        url = _url(item.get("link"))
        label = _text(item.get("label"))
        if url and label:
            links.append(NavigationLink(label=label, url=url))
    return links


def load_site_shell(cms: CmsClient, page_uid: str = "home") -> SiteShell:
    """
    Fetches the settings, navigation and page documents. A CMS outage must
    not take profile pages down, so failures fall back to a bare shell.
    """
    try:
        settings = cms.get_single("settings")
        navigation = cms.get_single("navigation")
        page = cms.get_by_uid("page", page_uid)
    except (requests.RequestException, ValueError) as e:
        logger.error("Error fetching site shell from CMS: %s", e)
        return SiteShell()

    settings_data = (settings or {}).get("data") or {}
    page_data = (page or {}).get("data") or {}
    return SiteShell(
        page_title=_text(page_data.get("page_title")) or SiteShell.page_title,
        meta_title=_text(page_data.get("meta_title")) or None,
        meta_description=_text(page_data.get("meta_description")) or None,
        no_index=bool(settings_data.get("noIndex")),
        no_follow=bool(settings_data.get("noFollow")),
        favicon_url=_url(settings_data.get("favicon")),
        og_image_url=_url(settings_data.get("meta_image")),
        show_open_graph=bool(settings_data.get("openGraphImage")),
        analytics_tag=settings_data.get("googleAnalyticsTag") or None,
        navigation=_navigation_links(navigation),
    )
