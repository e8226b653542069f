from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field

import requests
import urllib3
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from grantscraper.errors import SourceFetchError

DEFAULT_USER_AGENT = "grantscraper/0.1 (+scholarship listing ingestion)"
HTML_PARSER = "html.parser"
logger = logging.getLogger(__name__)
_SLOW_REQUEST_SECONDS = 5.0
_RETRY_STATUSES = (429, 500, 502, 503, 504)


@dataclass(slots=True)
class PoliteHttpClient:
    """GET-only session that waits `request_delay_seconds` between its own requests.

    One client is meant to talk to one host; the orchestrator hands every source
    its own instance so the delay applies per site.
    """

    request_delay_seconds: float = 2.0
    timeout_seconds: float = 20.0
    user_agent: str = DEFAULT_USER_AGENT
    max_retries: int = 3
    backoff_factor: float = 0.5
    verify_tls: bool = True
    _session: requests.Session = field(init=False, repr=False)
    _last_request_monotonic: float | None = field(init=False, default=None)
    _delay_lock: threading.Lock = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.request_delay_seconds < 0:
            raise ValueError("request_delay_seconds must be >= 0.")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0.")

        self._session = requests.Session()
        self._session.headers.update({"User-Agent": self.user_agent})
        self._session.verify = self.verify_tls
        if not self.verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        retry = Retry(
            total=self.max_retries,
            connect=self.max_retries,
            read=self.max_retries,
            status=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=_RETRY_STATUSES,
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)
        self._delay_lock = threading.Lock()

    def close(self) -> None:
        self._session.close()

    @property
    def timeout_tuple(self) -> tuple[float, float]:
        connect_timeout = max(1.0, min(self.timeout_seconds, 5.0))
        read_timeout = max(connect_timeout, self.timeout_seconds)
        return connect_timeout, read_timeout

    def get_text(self, url: str) -> str:
        return self._get(url).text

    def get_soup(self, url: str) -> BeautifulSoup:
        return BeautifulSoup(self.get_text(url), HTML_PARSER)

    def _get(self, url: str) -> requests.Response:
        self._wait_for_turn()
        started_at = time.monotonic()
        try:
            response = self._session.get(url, timeout=self.timeout_tuple)
        except requests.RequestException as exc:
            raise SourceFetchError(url, reason=f"{type(exc).__name__}: {exc}") from exc

        elapsed = time.monotonic() - started_at
        if elapsed > _SLOW_REQUEST_SECONDS:
            logger.warning("Slow HTTP GET %.3fs %s", elapsed, url)
        if response.status_code >= 400:
            raise SourceFetchError(url, status_code=response.status_code, reason=response.reason)
        return response

    def _wait_for_turn(self) -> None:
        with self._delay_lock:
            if self._last_request_monotonic is not None and self.request_delay_seconds > 0:
                remaining = self.request_delay_seconds - (time.monotonic() - self._last_request_monotonic)
                if remaining > 0:
                    time.sleep(remaining)
            self._last_request_monotonic = time.monotonic()
