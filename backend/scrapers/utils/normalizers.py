"""
Data normalization utilities for scrapers.

These functions standardize scraped data into consistent formats.
"""

import re
from typing import Iterable, List, Optional


def normalize_whitespace(text: Optional[str]) -> Optional[str]:
    """
    Collapse runs of whitespace and strip.

    Examples:
        "  Nemlendirici\\n  Krem " -> "Nemlendirici Krem"
        "   " -> None
    """
    if text is None:
        return None
    cleaned = re.sub(r'\s+', ' ', text).strip()
    return cleaned or None


def parse_price(text: Optional[str]) -> Optional[float]:
    """
    Parse a price in Turkish or English notation.

    The last separator followed by one or two digits is the decimal mark;
    any other separator groups thousands.

    Examples:
        "1.299,90 TL" -> 1299.9
        "₺249,90" -> 249.9
        "1.299 TL" -> 1299.0
        "12.5" -> 12.5
        "1,234.56" -> 1234.56
    """
    if not text:
        return None

    match = re.search(r'\d[\d.,]*', text)
    if not match:
        return None
    number = match.group(0).rstrip('.,')

    decimal_match = re.search(r'[.,](\d{1,2})$', number)
    if decimal_match:
        whole = re.sub(r'[.,]', '', number[:decimal_match.start()])
        return float(f"{whole or '0'}.{decimal_match.group(1)}")

    return float(re.sub(r'[.,]', '', number))


def parse_price_parts(whole: Optional[str], fraction: Optional[str] = None) -> Optional[float]:
    """
    Join a price rendered as separate whole and fraction elements.

    Examples:
        ("1.299", "90") -> 1299.9
        ("249", ",5") -> 249.5
        ("49", None) -> 49.0
    """
    whole_digits = re.sub(r'\D', '', whole or '')
    if not whole_digits:
        return None
    fraction_digits = re.sub(r'\D', '', fraction or '')[:2].ljust(2, '0')
    return round(float(f"{whole_digits}.{fraction_digits}"), 2)


def parse_rating(text: Optional[str]) -> Optional[float]:
    """
    Extract a rating number.

    Examples:
        "4,5 out of 5" -> 4.5
        "(4.2)" -> 4.2
        "yok" -> None
    """
    if not text:
        return None
    match = re.search(r'\d+(?:[.,]\d+)?', text)
    if not match:
        return None
    return float(match.group(0).replace(',', '.'))


def parse_count(text: Optional[str]) -> Optional[int]:
    """
    Extract an item count, ignoring thousands separators.

    Examples:
        "1.234 ürün" -> 1234
        "Toplam 87 Ürün" -> 87
        "10.000+ sonuç" -> 10000
    """
    if not text:
        return None
    match = re.search(r'\d[\d.,]*', text)
    if not match:
        return None
    return int(re.sub(r'\D', '', match.group(0)))


def join_categories(parts: Iterable[Optional[str]]) -> Optional[str]:
    """
    Join breadcrumb parts with '>'.

    Examples:
        ["Makyaj", " Göz "] -> "Makyaj>Göz"
        [] -> None
    """
    cleaned = [normalize_whitespace(p) for p in parts]
    cleaned = [p for p in cleaned if p]
    return '>'.join(cleaned) if cleaned else None


def unique(items: Iterable[Optional[str]]) -> List[str]:
    """Drop empty and repeated values, keeping order."""
    seen = set()
    result = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def capitalize_first(text: Optional[str]) -> Optional[str]:
    """
    Uppercase the first character only.

    Examples:
        "la-roche-posay" -> "La-roche-posay"
    """
    if not text:
        return text
    return text[0].upper() + text[1:]


def strip_currency(text: Optional[str], *symbols: str) -> Optional[str]:
    """
    Remove currency symbols from a price string.

    Examples:
        ("249,90 ₺", "₺") -> "249,90"
    """
    if text is None:
        return None
    for symbol in symbols or ('₺', 'TL', 'TRY'):
        text = text.replace(symbol, '')
    return text.strip()
