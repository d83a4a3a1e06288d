from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import PageNotFoundError, PlaylistFetchError
from .logging_utils import redact_url

if TYPE_CHECKING:
    from .config import SourceConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.5
DEFAULT_MAX_PAGES = 50
RETRY_STATUS_CODES = frozenset({500, 502, 503, 504, 429})


class PlaylistFetcher:
    """Downloads playlist text over HTTP(S).

    Transient failures (429 / 5xx) are retried with exponential backoff;
    the core converter never performs network I/O itself.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        max_retries: int = DEFAULT_RETRIES,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    ) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        if session is None:
            retry_strategy = Retry(
                total=max_retries,
                backoff_factor=backoff_factor,
                status_forcelist=list(RETRY_STATUS_CODES),
                allowed_methods=["GET"],
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    def fetch_text(self, url: str) -> str:
        safe_url = redact_url(url)
        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            raise PlaylistFetchError(f"Fetch failed for {safe_url}: {exc.__class__.__name__}") from exc

        if response.status_code == 404:
            raise PageNotFoundError(f"Not found: {safe_url}", status_code=404)
        if not response.ok:
            snippet = (response.text or "")[:500]
            message = f"Fetch failed: {response.status_code} {response.reason} for {safe_url}"
            if snippet:
                message = f"{message}\n{snippet}"
            raise PlaylistFetchError(message, status_code=response.status_code)

        if response.encoding is None or response.encoding.lower() == "iso-8859-1":
            # Playlists are UTF-8; requests falls back to latin-1 for text/* without a charset
            response.encoding = "utf-8"
        LOGGER.debug("Fetched %s (%d bytes)", safe_url, len(response.content))
        return response.text

    def fetch_paged(self, base_url: str, *, max_pages: int = DEFAULT_MAX_PAGES) -> str:
        """Fetch ``base_url + page`` for page 1.. until a 404, joining the bodies."""
        parts: List[str] = []
        for page in range(1, max_pages + 1):
            try:
                parts.append(self.fetch_text(f"{base_url}{page}"))
            except PageNotFoundError:
                break
        else:
            LOGGER.warning("Stopped paged fetch of %s after %d pages", redact_url(base_url), max_pages)
        LOGGER.debug("Fetched %d page(s) from %s", len(parts), redact_url(base_url))
        return "\n".join(parts)

    def fetch_source(self, source: SourceConfig) -> str:
        if source.paged:
            return self.fetch_paged(source.paged_base_url, max_pages=source.max_pages)
        return self.fetch_text(source.url)

    def close(self) -> None:
        self.session.close()


__all__ = ["PlaylistFetcher"]
