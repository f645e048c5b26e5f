"""
Data extraction utilities for scrapers.

These functions pull text, attributes and small structures out of parsed
HTML (BeautifulSoup) or out of URLs using regex patterns.
"""

import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import urljoin, urlparse, parse_qs
from bs4 import BeautifulSoup, NavigableString, Tag

from .normalizers import normalize_whitespace, unique


def select_text(soup, selector: str) -> Optional[str]:
    """Whitespace-normalized text of the first match, or None."""
    el = soup.select_one(selector)
    if el is None:
        return None
    return normalize_whitespace(el.get_text(' '))


def select_all_text(soup, selector: str) -> List[str]:
    """Non-empty normalized texts of all matches."""
    texts = [normalize_whitespace(el.get_text(' ')) for el in soup.select(selector)]
    return [t for t in texts if t]


def select_attr(soup, selector: str, *attrs: str) -> Optional[str]:
    """First non-empty attribute value (tried in order) of the first match."""
    el = soup.select_one(selector)
    if el is None:
        return None
    for attr in attrs:
        value = el.get(attr)
        if value:
            return value.strip()
    return None


def select_all_attr(soup, selector: str, *attrs: str) -> List[str]:
    """First non-empty attribute value (tried in order) of every match."""
    values = []
    for el in soup.select(selector):
        for attr in attrs:
            value = el.get(attr)
            if value:
                values.append(value.strip())
                break
    return values


def inner_html(soup, selector: str) -> Optional[str]:
    """
    Inner HTML of the first match, stripped.

    Returns None when the element is missing or empty.
    """
    el = soup.select_one(selector)
    if el is None:
        return None
    html = ''.join(str(child) for child in el.contents).strip()
    return html or None


def own_text(el: Optional[Tag]) -> Optional[str]:
    """
    First direct text node of an element, ignoring child tags.

    Examples:
        <div>Maybelline <span>New York</span></div> -> "Maybelline"
    """
    if el is None:
        return None
    for child in el.children:
        if isinstance(child, NavigableString):
            text = normalize_whitespace(str(child))
            if text:
                return text
    return None


def absolute_url(href: Optional[str], base_url: str) -> Optional[str]:
    """
    Resolve a link against the site base URL.

    Examples:
        ("/urun/krem-p-123", "https://www.gratis.com") -> "https://www.gratis.com/urun/krem-p-123"
        ("#", "https://x.com") -> None
    """
    if not href:
        return None
    href = href.strip()
    if not href or href.startswith(('#', 'javascript:', 'mailto:')):
        return None
    return urljoin(base_url if base_url.endswith('/') else base_url + '/', href)


def extract_links(
    soup,
    selector: str,
    base_url: str,
    contains: Optional[str] = None,
    attr: str = 'href',
) -> List[str]:
    """
    Collect unique absolute links from the matching elements.

    Args:
        soup: Parsed page
        selector: CSS selector of the link elements
        base_url: Base for relative links
        contains: Keep only URLs containing this fragment
        attr: Attribute holding the link
    """
    links = []
    for el in soup.select(selector):
        url = absolute_url(el.get(attr), base_url)
        if url and (contains is None or contains in url):
            links.append(url)
    return unique(links)


def extract_breadcrumbs(
    soup,
    selector: str,
    exclude: Iterable[str] = (),
    drop_last: bool = False,
) -> List[str]:
    """
    Breadcrumb texts in order.

    Args:
        soup: Parsed page
        selector: CSS selector of the crumb elements
        exclude: Crumb texts to skip (e.g. "Anasayfa")
        drop_last: Drop the final crumb (usually the product itself)
    """
    crumbs = select_all_text(soup, selector)
    if drop_last and len(crumbs) > 1:
        crumbs = crumbs[:-1]
    excluded = set(exclude)
    return [c for c in crumbs if c not in excluded]


def extract_table_specs(
    soup,
    row_selector: str,
    name_selector: str = 'th',
    value_selector: str = 'td',
) -> List[Dict[str, str]]:
    """
    Name/value pairs from table-like rows.

    Rows missing either cell are skipped.
    """
    specs = []
    for row in soup.select(row_selector):
        name_el = row.select_one(name_selector)
        value_el = row.select_one(value_selector)
        if name_el is None or value_el is None:
            continue
        name = normalize_whitespace(name_el.get_text(' '))
        value = normalize_whitespace(value_el.get_text(' '))
        if name and value:
            specs.append({'name': name, 'value': value})
    return specs


def extract_id(pattern: str, text: Optional[str]) -> Optional[str]:
    """
    First regex group of pattern in text.

    Examples:
        (r"-p-(\\d+)$", "https://www.gratis.com/krem-p-10045") -> "10045"
    """
    if not text:
        return None
    match = re.search(pattern, text)
    return match.group(1) if match else None


def query_param(url: Optional[str], name: str) -> Optional[str]:
    """
    Value of a query string parameter.

    Examples:
        ("https://www.farmasi.com.tr/urun?pid=1000123", "pid") -> "1000123"
    """
    if not url:
        return None
    values = parse_qs(urlparse(url).query).get(name)
    return values[0] if values else None


def parse_html(html: str) -> BeautifulSoup:
    """Parse an HTML string with the stdlib parser."""
    return BeautifulSoup(html, 'html.parser')
