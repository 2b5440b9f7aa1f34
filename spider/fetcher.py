"""URL fetching with requests/selenium backends and retry/rate-limit logic."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable
from urllib.parse import urlsplit
from urllib.robotparser import RobotFileParser

import requests
from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.common.by import By
from selenium.webdriver.firefox.options import Options as FirefoxOptions
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from .config import SpiderConfig
from .constants import ROBOTS_TIMEOUT_SECONDS
from .exceptions import FetchError
from .types import FetchBackend, FetchResult, Resource
from .url import FilterableURI, host_from_url

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429})


class HttpFetcher:
    """Fetch URIs using either `requests` or `selenium`.

    Concurrency model:
    - Requests backend keeps one session per thread.
    - Selenium backend is serialized with a lock because one shared browser
      instance is used, which is generally unstable under multithreaded use.

    Failures of any kind surface as `FetchError`; the caller decides whether
    they are fatal.
    """

    def __init__(self, config: SpiderConfig | None = None) -> None:
        self.config = config or SpiderConfig()

        self._thread_local = threading.local()

        self._rate_lock = threading.Lock()
        self._next_allowed_time_by_host: dict[str, float] = {}

        self._robots_lock = threading.Lock()
        self._robots_cache: dict[str, RobotFileParser | None] = {}

        self._selenium_lock = threading.Lock()
        self._selenium_driver = None

        self._closed = threading.Event()

    def request(self, uri: FilterableURI) -> Resource:
        """Fetch one URI with the configured backend, retries, and policies."""

        url = str(uri)
        if self._closed.is_set():
            raise FetchError(url, "Fetcher is closed")

        if self.config.respect_robots and not self._is_allowed_by_robots(url):
            raise FetchError(url, "Blocked by robots.txt")

        if self.config.backend == FetchBackend.SELENIUM:
            result = self._fetch_with_retries(url, self._fetch_once_selenium)
        else:
            result = self._fetch_with_retries(url, self._fetch_once_requests)
        return Resource(uri=uri, response=result)

    def close(self) -> None:
        """Close fetcher resources (notably the selenium browser)."""

        self._closed.set()

        session = getattr(self._thread_local, "session", None)
        if session is not None:
            session.close()
            self._thread_local.session = None

        with self._selenium_lock:
            if self._selenium_driver is None:
                return
            try:
                self._selenium_driver.quit()
            except WebDriverException as exc:
                logger.debug("Ignoring selenium shutdown failure: %s", exc)
            finally:
                self._selenium_driver = None

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _fetch_with_retries(self, url: str, fetch_once: Callable[[str], FetchResult]) -> FetchResult:
        attempts = max(1, self.config.retries + 1)
        backoff = max(0.0, self.config.retry_backoff_seconds)

        for attempt in range(1, attempts + 1):
            try:
                result = fetch_once(url)
            except FetchError as exc:
                if attempt == attempts or self._closed.is_set():
                    raise
                logger.debug("Attempt %d/%d for %s failed: %s", attempt, attempts, url, exc)
            else:
                status = result.status_code or 0
                if status < 400:
                    return result
                error = FetchError(url, f"HTTP status {status}", status_code=status)
                if not self._is_retryable_status(status) or attempt == attempts:
                    raise error
                logger.debug("Attempt %d/%d for %s returned %d", attempt, attempts, url, status)

            if backoff > 0:
                # Linear backoff.
                time.sleep(backoff * attempt)

        raise FetchError(url, "Unknown fetch failure")

    @staticmethod
    def _is_retryable_status(status_code: int) -> bool:
        return status_code in RETRYABLE_STATUS_CODES or status_code >= 500

    def _fetch_once_requests(self, url: str) -> FetchResult:
        self._wait_for_rate_limit(url)
        started = time.perf_counter()

        try:
            response = self._thread_local_session().get(
                url,
                headers=self.config.request_headers(),
                timeout=self.config.timeout_seconds,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise FetchError(url, f"{exc.__class__.__name__}: {exc}", cause=exc) from exc

        return FetchResult(
            requested_url=url,
            final_url=response.url or url,
            status_code=response.status_code,
            content_type=response.headers.get("Content-Type"),
            body=response.content or b"",
            headers=dict(response.headers),
            backend=FetchBackend.REQUESTS,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )

    def _fetch_once_selenium(self, url: str) -> FetchResult:
        self._wait_for_rate_limit(url)
        started = time.perf_counter()

        with self._selenium_lock:
            try:
                driver = self._get_or_create_selenium_driver()
                driver.set_page_load_timeout(max(1, int(self.config.timeout_seconds)))
                driver.get(url)

                wait_seconds = self.config.selenium_wait_seconds
                if self.config.selenium_wait_selector:
                    WebDriverWait(driver, wait_seconds or self.config.timeout_seconds).until(
                        EC.presence_of_element_located((By.CSS_SELECTOR, self.config.selenium_wait_selector))
                    )
                # Settling time for pages that hydrate after the selector appears.
                if wait_seconds:
                    time.sleep(wait_seconds)

                final_url = driver.current_url or url
                body = (driver.page_source or "").encode("utf-8", errors="replace")
            except (TimeoutException, WebDriverException) as exc:
                raise FetchError(url, f"{exc.__class__.__name__}: {exc}", cause=exc) from exc

        return FetchResult(
            requested_url=url,
            final_url=final_url,
            status_code=200,
            content_type="text/html; charset=utf-8",
            body=body,
            backend=FetchBackend.SELENIUM,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            self._thread_local.session = session
        return session

    def _wait_for_rate_limit(self, url: str) -> None:
        wait_seconds = max(0.0, self.config.rate_limit_seconds)
        if wait_seconds <= 0:
            return

        host = host_from_url(url)

        while True:
            with self._rate_lock:
                now = time.monotonic()
                next_allowed = self._next_allowed_time_by_host.get(host, 0.0)
                if now >= next_allowed:
                    self._next_allowed_time_by_host[host] = now + wait_seconds
                    return
                sleep_for = next_allowed - now

            time.sleep(sleep_for)

    def _is_allowed_by_robots(self, url: str) -> bool:
        parsed = urlsplit(url)
        host_key = f"{parsed.scheme}://{parsed.netloc}"

        with self._robots_lock:
            cached = host_key in self._robots_cache
            parser = self._robots_cache.get(host_key)

        if not cached:
            parser = self._load_robots_parser(host_key)
            with self._robots_lock:
                self._robots_cache[host_key] = parser

        # If robots cannot be loaded, fail open to avoid stalling crawling.
        if parser is None:
            return True
        return parser.can_fetch(self.config.user_agent or "*", url)

    def _load_robots_parser(self, host_root: str) -> RobotFileParser | None:
        robots_url = f"{host_root}/robots.txt"

        try:
            response = self._thread_local_session().get(
                robots_url,
                headers={"User-Agent": self.config.user_agent},
                timeout=min(ROBOTS_TIMEOUT_SECONDS, self.config.timeout_seconds),
            )
        except requests.RequestException as exc:
            logger.debug("robots.txt unavailable for %s: %s", host_root, exc)
            return None

        if response.status_code >= 400:
            return None

        parser = RobotFileParser()
        parser.set_url(robots_url)
        parser.parse(response.text.splitlines())
        return parser

    def _get_or_create_selenium_driver(self):
        if self._selenium_driver is not None:
            return self._selenium_driver

        errors: list[str] = []

        try:
            chrome_options = ChromeOptions()
            chrome_options.add_argument("--headless=new")
            chrome_options.add_argument("--disable-gpu")
            chrome_options.add_argument("--no-sandbox")
            chrome_options.add_argument("--disable-dev-shm-usage")
            chrome_options.add_argument(f"--user-agent={self.config.user_agent}")
            self._selenium_driver = webdriver.Chrome(options=chrome_options)
            return self._selenium_driver
        except WebDriverException as exc:
            errors.append(f"Chrome: {exc}")

        try:
            firefox_options = FirefoxOptions()
            firefox_options.add_argument("-headless")
            firefox_options.set_preference("general.useragent.override", self.config.user_agent)
            self._selenium_driver = webdriver.Firefox(options=firefox_options)
            return self._selenium_driver
        except WebDriverException as exc:
            errors.append(f"Firefox: {exc}")

        raise WebDriverException("; ".join(errors) or "No usable Selenium driver found")


__all__ = ["HttpFetcher", "RETRYABLE_STATUS_CODES"]
