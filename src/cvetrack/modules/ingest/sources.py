"""Advisory sources: local directories and the public cvelistV5 repository."""

import logging
import re
from collections.abc import Iterator
from pathlib import Path

import httpx

from cvetrack.config import DEFAULT_REMOTE_BASE_URL
from cvetrack.errors import SourceError

logger = logging.getLogger(__name__)

_ADVISORY_ID = re.compile(r"^CVE-(\d{4})-(\d{4,19})$")


def iter_json_files(root: Path) -> Iterator[Path]:
    """Yield ``root`` itself if it is a file, else every ``*.json`` below it, sorted."""
    if root.is_file():
        yield root
        return
    if not root.is_dir():
        raise SourceError(f"No such file or directory: {root}")
    yield from sorted(p for p in root.rglob("*.json") if p.is_file())


def advisory_path(advisory_id: str) -> str:
    """Relative path of an advisory in the cvelistV5 layout.

    ``CVE-2024-12345`` lives at ``2024/12xxx/CVE-2024-12345.json``.
    """
    match = _ADVISORY_ID.match(advisory_id)
    if not match:
        raise SourceError(f"Not an advisory identifier: {advisory_id!r}")
    year, number = match.groups()
    return f"{year}/{int(number) // 1000}xxx/{advisory_id}.json"


class RemoteSource:
    """Fetch raw advisory documents over HTTP."""

    def __init__(self, base_url: str = DEFAULT_REMOTE_BASE_URL, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(timeout=timeout, follow_redirects=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self) -> None:
        self.client.close()

    def url_for(self, advisory_id: str) -> str:
        return f"{self.base_url}/{advisory_path(advisory_id)}"

    def fetch(self, advisory_id: str) -> bytes:
        """Return the raw document for ``advisory_id``.

        Raises SourceError on transport failures and non-200 responses.
        """
        url = self.url_for(advisory_id)
        try:
            response = self.client.get(url)
        except httpx.HTTPError as e:
            raise SourceError(f"Request for {advisory_id} failed: {e}") from e
        if response.status_code == 404:
            raise SourceError(f"{advisory_id} not found at {url}")
        if response.status_code != 200:
            raise SourceError(f"{advisory_id}: HTTP {response.status_code} from {url}")
        logger.debug("Fetched %s (%d bytes)", advisory_id, len(response.content))
        return response.content
