"""
Server-rendered HTML for the public pages. Every value coming from a user
document or the CMS goes through html.escape.
"""

from __future__ import annotations

import html
from typing import Any, Optional

from fanslink.cms import SiteShell
from fanslink.types import Link, PublicProfile

GA_SNIPPET = """<script async src="https://www.googletagmanager.com/gtag/js?id={tag}"></script>
<script>
window.dataLayer = window.dataLayer || [];
function gtag(){{dataLayer.push(arguments);}}
gtag('js', new Date());
gtag('config', '{tag}');
</script>"""


def _e(value: Any) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def _head(shell: SiteShell, site_url: str, title: Optional[str] = None) -> str:
    page_title = title or shell.page_title
    parts = [
        '<meta charset="utf-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1">',
        f"<title>{_e(page_title)}</title>",
        f'<meta name="title" content="{_e(page_title)}">',
    ]
    if shell.meta_description:
        parts.append(f'<meta name="description" content="{_e(shell.meta_description)}">')
    if shell.no_index:
        parts.append('<meta name="robots" content="noindex">')
    if shell.no_follow:
        parts.append('<meta name="robots" content="nofollow">')
    if shell.favicon_url:
        parts.append(f'<link rel="icon" href="{_e(shell.favicon_url)}" type="image/png">')
    if shell.show_open_graph:
        parts.extend(
            [
                '<meta property="og:type" content="website">',
                f'<meta property="og:url" content="{_e(site_url)}">',
                f'<meta property="og:title" content="{_e(shell.meta_title or page_title)}">',
                f'<meta property="og:description" content="{_e(shell.meta_description)}">',
            ]
        )
        if shell.og_image_url:
            parts.append(f'<meta property="og:image" content="{_e(shell.og_image_url)}">')
    if shell.analytics_tag:
        parts.append(GA_SNIPPET.format(tag=_e(shell.analytics_tag)))
    return "\n".join(parts)


def _header(shell: SiteShell) -> str:
    if not shell.navigation:
        return ""
    items = "".join(
        f'<li><a href="{_e(item.url)}">{_e(item.label)}</a></li>'
        for item in shell.navigation
    )
    return f'<header class="site-header"><nav><ul>{items}</ul></nav></header>'


def render_layout(
    shell: SiteShell, body: str, *, site_url: str, title: Optional[str] = None
) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        f"<head>\n{_head(shell, site_url, title)}\n</head>\n"
        f"<body>\n{_header(shell)}\n{body}\n</body>\n"
        "</html>\n"
    )


def _render_link(link: Link) -> str:
    image = link.metadata.preview_image if link.metadata else None
    thumbnail = (
        f'<img class="link-thumbnail" src="{_e(image)}" alt="" loading="lazy">'
        if image
        else ""
    )
    # The stored URL only has to contain an http(s) URL somewhere.
    href = link.link if link.link.lower().startswith(("http://", "https://")) else "#"
    return (
        f'<li class="link link-{_e(link.layout)}">'
        f'<a href="{_e(href)}" rel="noopener" target="_blank">'
        f"{thumbnail}<span>{_e(link.title)}</span></a></li>"
    )


def render_profile_page(profile: PublicProfile, shell: SiteShell, *, site_url: str) -> str:
    style = []
    if profile.background:
        style.append(f"background: {profile.background}")
    if profile.color:
        style.append(f"color: {profile.color}")
    photo = (
        f'<img class="profile-photo" src="{_e(profile.photo_url)}" '
        f'alt="{_e(profile.username)}" width="150" height="150">'
        if profile.photo_url
        else ""
    )
    links = "".join(_render_link(link) for link in profile.links)
    body = (
        f'<main class="public-profile" style="{_e("; ".join(style))}">'
        f'<div class="profile">{photo}<p class="username">@{_e(profile.username)}</p></div>'
        f'<ul class="links">{links}</ul>'
        "</main>"
    )
    return render_layout(
        shell, body, site_url=site_url, title=f"@{profile.username}"
    )


def render_message_page(
    shell: SiteShell, *, site_url: str, heading: str, message: str
) -> str:
    body = (
        f'<main class="message"><h1>{_e(heading)}</h1><p>{_e(message)}</p></main>'
    )
    return render_layout(shell, body, site_url=site_url, title=heading)


def render_home_page(shell: SiteShell, *, site_url: str) -> str:
    body = (
        f'<main class="home"><h1>{_e(shell.page_title)}</h1>'
        f"<p>{_e(shell.meta_description)}</p></main>"
    )
    return render_layout(shell, body, site_url=site_url)
