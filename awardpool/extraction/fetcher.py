"""Source fetch + parse.

Policy:
- Every fetch goes over https (plain http sources are upgraded).
- One bounded attempt, plus exactly one retry on timeout/connection errors.
- Never raises: failures come back classified as
  `unreachable`, `timeout`, `http_status:<code>` or `parse_error`.
"""

from __future__ import annotations

import ipaddress
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import urlparse

import feedparser
import requests
from bs4 import BeautifulSoup
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed
from urllib3.exceptions import ReadTimeoutError

from awardpool.ingestion.source_types import SOURCE_KIND_FEED, SOURCE_KIND_HTML, SOURCE_KINDS
from awardpool.ingestion.url_utils import force_https

logger = logging.getLogger(__name__)


CONNECT_TIMEOUT_S = float(os.environ.get("FETCH_CONNECT_TIMEOUT_S", "5"))
READ_TIMEOUT_S = float(os.environ.get("FETCH_READ_TIMEOUT_S", "8"))
RETRY_BACKOFF_S = float(os.environ.get("FETCH_RETRY_BACKOFF_S", "1.0"))
MAX_BYTES = int(os.environ.get("FETCH_MAX_BYTES", str(3_000_000)))
USER_AGENT = os.environ.get("FETCH_USER_AGENT", "Mozilla/5.0 (compatible; AwardPoolBot/1.0)")

REASON_UNREACHABLE = "unreachable"
REASON_TIMEOUT = "timeout"
REASON_PARSE_ERROR = "parse_error"

_ACCEPT = {
    SOURCE_KIND_HTML: "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    SOURCE_KIND_FEED: "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
}


def http_status_reason(code: int) -> str:
    return f"http_status:{int(code)}"


@dataclass(frozen=True)
class FetchFailure:
    reason: str
    detail: Optional[str] = None


@dataclass(frozen=True)
class FetchResult:
    url: str
    kind: str
    document: Any = None
    status_code: Optional[int] = None
    failure: Optional[FetchFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


_PRIVATE_NETS = [
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]


def _is_private_ip(hostname: str) -> bool:
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return any(ip in net for net in _PRIVATE_NETS)


def _validate_fetch_url(url: str) -> Optional[str]:
    """Return error string if URL should not be fetched (SSRF/abuse protections)."""
    try:
        p = urlparse(url)
    except ValueError:
        return "invalid_url"
    if p.scheme != "https":
        return "bad_scheme"
    host = (p.hostname or "").strip().lower()
    if not host:
        return "missing_host"
    if host in ("localhost", "localhost.localdomain"):
        return "blocked_host"
    if _is_private_ip(host):
        return "blocked_private_ip"
    return None


class _BodyTooLarge(Exception):
    pass


def _is_read_timeout(exc: requests.ConnectionError) -> bool:
    cause = exc.args[0] if exc.args else None
    return isinstance(cause, ReadTimeoutError) or isinstance(exc.__cause__, ReadTimeoutError)


def parse_document(body: bytes, kind: str, *, encoding: Optional[str] = None) -> Any:
    """Parse a raw body into a BeautifulSoup tree or a feedparser result.

    Raises ValueError when the body is not a usable document.
    """
    if not body or not body.strip():
        raise ValueError("empty_body")
    if kind == SOURCE_KIND_FEED:
        parsed = feedparser.parse(body)
        if parsed.get("bozo") and not parsed.get("entries"):
            raise ValueError(f"bad_feed: {parsed.get('bozo_exception')}")
        if not parsed.get("feed") and not parsed.get("entries"):
            raise ValueError("not_a_feed")
        return parsed
    html = body.decode(encoding or "utf-8", errors="replace")
    soup = BeautifulSoup(html, "html.parser")
    if soup.find(True) is None:
        raise ValueError("no_markup")
    return soup


class SourceFetcher:
    """Fetch one HTML page or feed per call and hand back a parsed document.

    `sleep` is injectable so callers (and tests) control the retry wait.
    """

    def __init__(
        self,
        *,
        connect_timeout: float = CONNECT_TIMEOUT_S,
        read_timeout: float = READ_TIMEOUT_S,
        retry_backoff: float = RETRY_BACKOFF_S,
        max_bytes: int = MAX_BYTES,
        user_agent: str = USER_AGENT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.timeout = (connect_timeout, read_timeout)
        self.retry_backoff = retry_backoff
        self.max_bytes = max_bytes
        self.user_agent = user_agent
        self._sleep = sleep

    def fetch(self, url: str, kind: str = SOURCE_KIND_HTML) -> FetchResult:
        if kind not in SOURCE_KINDS:
            return FetchResult(url=url, kind=kind, failure=FetchFailure(REASON_PARSE_ERROR, f"unknown_kind:{kind}"))
        target = force_https(url)
        err = _validate_fetch_url(target)
        if err:
            logger.warning(f"[fetch] refusing {url!r}: {err}")
            return FetchResult(url=target or url, kind=kind, failure=FetchFailure(REASON_UNREACHABLE, err))

        try:
            resp, body = self._get_with_retry(target, kind)
        except requests.Timeout as e:
            logger.warning(f"[fetch] {target} -> timeout after retry: {e}")
            return FetchResult(url=target, kind=kind, failure=FetchFailure(REASON_TIMEOUT, str(e)))
        except _BodyTooLarge:
            return FetchResult(url=target, kind=kind, failure=FetchFailure(REASON_PARSE_ERROR, "too_large"))
        except requests.RequestException as e:
            logger.warning(f"[fetch] {target} -> unreachable: {e}")
            return FetchResult(url=target, kind=kind, failure=FetchFailure(REASON_UNREACHABLE, str(e)))

        status_code = int(resp.status_code)
        if status_code >= 400:
            logger.warning(f"[fetch] {target} -> HTTP {status_code}")
            return FetchResult(
                url=target,
                kind=kind,
                status_code=status_code,
                failure=FetchFailure(http_status_reason(status_code), resp.reason or None),
            )

        try:
            document = parse_document(body, kind, encoding=resp.encoding)
        except Exception as e:
            logger.warning(f"[fetch] {target} -> parse error: {e}")
            return FetchResult(
                url=target,
                kind=kind,
                status_code=status_code,
                failure=FetchFailure(REASON_PARSE_ERROR, str(e)),
            )
        return FetchResult(url=target, kind=kind, document=document, status_code=status_code)

    def _get_with_retry(self, url: str, kind: str):
        retrying = Retrying(
            stop=stop_after_attempt(2),
            wait=wait_fixed(self.retry_backoff),
            retry=retry_if_exception_type((requests.Timeout, requests.ConnectionError)),
            sleep=self._sleep,
            before_sleep=lambda rs: logger.warning(
                f"[fetch] {url} attempt {rs.attempt_number} failed ({rs.outcome.exception()!r}); retrying once"
            ),
            reraise=True,
        )
        return retrying(self._get_once, url, kind)

    def _get_once(self, url: str, kind: str):
        resp = requests.get(
            url,
            headers={
                "User-Agent": self.user_agent,
                "Accept": _ACCEPT[kind],
                "Accept-Language": "en-US,en;q=0.9,pt-BR;q=0.8",
            },
            timeout=self.timeout,
            allow_redirects=True,
            stream=True,
        )
        try:
            if resp.status_code >= 400:
                return resp, b""
            # Size guardrail: read up to max_bytes
            content = b""
            try:
                for chunk in resp.iter_content(chunk_size=64 * 1024):
                    if not chunk:
                        continue
                    content += chunk
                    if len(content) > self.max_bytes:
                        raise _BodyTooLarge()
            except requests.ConnectionError as e:
                # requests reports a stalled body read as a connection error
                if _is_read_timeout(e):
                    raise requests.ReadTimeout(str(e)) from e
                raise
            return resp, content
        finally:
            resp.close()
