"""
JSON output files with per-item checkpointing.

Each base URL gets its own timestamped file under the site's output
directory. The whole array is rewritten after every item through a temporary
file and an atomic rename, so a crash or a Ctrl+C leaves a valid file
behind. A rerun skips URLs found in earlier files for the same base URL.
"""

import json
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 50


def url_slug(base_url: str) -> str:
    """
    Turn a base URL into a file-name fragment.

    Examples:
        https://www.n11.com/makyaj -> https___www_n11_com_makyaj
    """
    return re.sub(r'[^a-zA-Z0-9]', '_', base_url)[:SLUG_MAX_LENGTH]


def format_timestamp(now: datetime) -> str:
    """
    Format a timestamp for file names.

    Examples:
        2024-03-10T12:30:45.123000 -> 2024-03-10_12-30-45-123
    """
    stamp = now.isoformat(timespec='milliseconds')
    stamp = re.sub(r'[+-]\d{2}:\d{2}$|Z$', '', stamp)
    return stamp.replace(':', '-').replace('.', '-').replace('T', '_')


def build_output_filename(base_url: str, now: Optional[datetime] = None, prefix: str = 'products') -> str:
    """Build `<prefix>_<date>_<slug>_<timestamp>.json` for a base URL."""
    now = now or datetime.now(timezone.utc)
    return f"{prefix}_{now.strftime('%Y-%m-%d')}_{url_slug(base_url)}_{format_timestamp(now)}.json"


class ProductStore:
    """
    Output file for one base URL.

    Usage:
        store = ProductStore(Path('output/gratis'), base_url)
        processed = store.load_existing_urls()
        store.append(record)   # rewrites the file
    """

    def __init__(
        self,
        directory: Path,
        base_url: str,
        now: Optional[datetime] = None,
        prefix: str = 'products',
    ):
        self.directory = Path(directory)
        self.base_url = base_url
        self.slug = url_slug(base_url)
        self.path = self.directory / build_output_filename(base_url, now, prefix)
        self.records: List[Dict[str, Any]] = []

    def existing_files(self) -> List[Path]:
        """JSON files from earlier runs for the same base URL."""
        if not self.directory.exists():
            return []
        return sorted(
            p for p in self.directory.glob('*.json')
            if self.slug in p.name and p != self.path
        )

    def load_existing_urls(self) -> Set[str]:
        """
        Collect URLs already scraped for this base URL.

        Placeholder entries (those with an `error`) are left out so that
        a rerun tries them again. Unreadable files are skipped.
        """
        urls: Set[str] = set()
        for path in self.existing_files():
            try:
                with open(path, encoding='utf-8') as f:
                    entries = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable output file {path.name}: {e}")
                continue

            if not isinstance(entries, list):
                logger.warning(f"Skipping {path.name}: expected a JSON array")
                continue

            for entry in entries:
                if isinstance(entry, dict) and entry.get('url') and not entry.get('error'):
                    urls.add(entry['url'])
        return urls

    def append(self, record) -> None:
        """Add a record (dict or object with to_dict) and rewrite the file."""
        if record is None:
            return
        self.records.append(record.to_dict() if hasattr(record, 'to_dict') else dict(record))
        self.save()

    def save(self, records: Optional[List[Any]] = None) -> Path:
        """
        Write the full array to disk atomically.

        The array goes to a temporary file in the same directory which then
        replaces the output file, so an interrupted write never truncates it.
        """
        if records is not None:
            self.records = [r.to_dict() if hasattr(r, 'to_dict') else dict(r) for r in records if r is not None]
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix='tmp_', suffix='.json.part')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump([r for r in self.records if r is not None], f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        return self.path
