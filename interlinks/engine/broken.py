"""Detection and repair of internal links whose target no longer resolves."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from .config import EngineConfig, load_config
from .index import ContentIndex
from .markup import parse_fragment
from .matcher import normalize_href
from .types import BrokenLink


def extract_links(html: str) -> List[Tuple[str, str]]:
    """Return ``(href, visible text)`` for every anchor carrying an href."""

    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")
    links: List[Tuple[str, str]] = []
    for anchor in soup.find_all("a", href=True):
        links.append((str(anchor["href"]).strip(), " ".join(anchor.get_text(" ").split())))
    return links


def is_internal_href(href: str, config: EngineConfig | None = None) -> bool:
    """True for site-relative paths that are not API, asset or protocol-relative links."""

    engine_config = config or load_config(None)
    if not href.startswith("/") or href.startswith("//"):
        return False
    return not any(href.startswith(prefix) for prefix in engine_config.get("ignored_link_prefixes", []))


def detect_broken_links(
    html: str,
    index: ContentIndex,
    config: EngineConfig | None = None,
) -> List[BrokenLink]:
    """Flag internal links whose path matches no indexed content, static route or route prefix."""

    engine_config = config or load_config(None)
    known = set(index.urls) | set(engine_config.get("static_routes", []))
    # Parameterised pages served outside the content tables, e.g. /tags/<slug>.
    route_prefixes = tuple(engine_config.get("static_route_prefixes", []))
    broken: List[BrokenLink] = []
    for href, text in extract_links(html):
        if not is_internal_href(href, engine_config):
            continue
        path = normalize_href(href)
        if path in known or (route_prefixes and path.startswith(route_prefixes)):
            continue
        broken.append(BrokenLink(href=href, anchor_text=text))
    return broken


def remove_broken_links_from_html(html: str, broken_urls: Iterable[str]) -> Tuple[str, int]:
    """Replace anchors pointing at ``broken_urls`` with their inner content."""

    targets = {normalize_href(url) for url in broken_urls if url}
    if not html or not targets:
        return html, 0

    try:
        soup = parse_fragment(html)
    except ParserRejectedMarkup:
        return html, 0

    removed = 0
    for anchor in soup.find_all("a", href=True):
        if normalize_href(str(anchor["href"])) in targets:
            anchor.unwrap()
            removed += 1

    if not removed:
        return html, 0
    return str(soup), removed


def rewrite_urls_in_html(html: str, old_url: str, new_url: str) -> Tuple[str, int]:
    """Point every href at ``old_url`` to ``new_url``, keeping query and fragment."""

    old_path = normalize_href(old_url)
    if not html or not old_path or old_path == normalize_href(new_url):
        return html, 0

    try:
        soup = parse_fragment(html)
    except ParserRejectedMarkup:
        return html, 0

    rewritten = 0
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"])
        if normalize_href(href) != old_path:
            continue
        split_at = min((pos for pos in (href.find("?"), href.find("#")) if pos != -1), default=len(href))
        anchor["href"] = new_url + href[split_at:]
        rewritten += 1

    if not rewritten:
        return html, 0
    return str(soup), rewritten
