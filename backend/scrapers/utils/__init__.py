"""Shared utilities for scrapers."""

from .normalizers import (
    normalize_whitespace,
    parse_price,
    parse_price_parts,
    parse_rating,
    parse_count,
    join_categories,
)
from .extractors import (
    select_text,
    select_attr,
    inner_html,
    extract_links,
    extract_breadcrumbs,
    extract_table_specs,
    extract_id,
)

__all__ = [
    'normalize_whitespace',
    'parse_price',
    'parse_price_parts',
    'parse_rating',
    'parse_count',
    'join_categories',
    'select_text',
    'select_attr',
    'inner_html',
    'extract_links',
    'extract_breadcrumbs',
    'extract_table_specs',
    'extract_id',
]
