"""URL helpers for source normalization and dedup."""

from __future__ import annotations

import hashlib
import re
from typing import Iterable, List, Optional, TypeVar
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse


# Query params that never change which article a URL points at
TRACKING_PARAM_PREFIXES = ("utm_", "mc_", "at_")
TRACKING_PARAMS = frozenset({
    "gclid",
    "fbclid",
    "ocid",
    "cmpid",
    "smid",
    "ref",
    "ref_src",
    "outputtype",
})

# Portal article URLs often have an AMP twin: /path/amp, /amp/path, ?amp=1
_AMP_SUFFIX_RE = re.compile(r"/amp/?$", re.IGNORECASE)
_AMP_PREFIX_RE = re.compile(r"^/amp(?=/)", re.IGNORECASE)


def force_https(url: str) -> str:
    """Upgrade a source URL to the secure scheme.

    - `http://` becomes `https://`
    - scheme-less (`//host/x` or `host/x`) gets `https://`
    - other schemes are left alone so the fetcher can refuse them
    """
    u = (url or "").strip()
    if not u:
        return ""
    if u.startswith("//"):
        return "https:" + u
    p = urlparse(u)
    if not p.scheme or (not p.netloc and "." in p.scheme):
        # "example.com/path" parses as a path (or a bogus scheme for "host:port")
        return "https://" + u.lstrip("/")
    if p.scheme.lower() == "http":
        return urlunparse(("https",) + tuple(p[1:]))
    return u


def absolutize(href: str, base_url: str) -> Optional[str]:
    """Resolve a link against the page it was found on, forcing https."""
    h = (href or "").strip()
    if not h or h.startswith(("#", "mailto:", "javascript:", "tel:")):
        return None
    try:
        full = urljoin(base_url, h)
    except ValueError:
        return None
    full = force_https(full)
    if urlparse(full).scheme != "https":
        return None
    return full


def is_tracking_param(name: str) -> bool:
    low = name.lower()
    return low in TRACKING_PARAMS or low.startswith(TRACKING_PARAM_PREFIXES)


def canonicalize_url(url: str, *, strip_params: Optional[Iterable[str]] = None) -> str:
    """Key used to recognise two links to the same article.

    Scheme is forced to https, the host is lowercased without `www.`, AMP
    variants collapse onto the article path, fragments and tracking params
    go away and the rest of the query is sorted.
    """
    if not url:
        return ""
    extra = {s.lower() for s in strip_params or ()}
    p = urlparse(force_https(url))
    host = (p.netloc or "").lower()
    if host.startswith("www."):
        host = host[4:]

    path = _AMP_PREFIX_RE.sub("", _AMP_SUFFIX_RE.sub("", p.path or "")) or "/"
    if path != "/":
        path = path.rstrip("/") or "/"

    params = sorted(
        (k, v)
        for k, v in parse_qsl(p.query, keep_blank_values=True)
        if not is_tracking_param(k) and k.lower() not in extra and k.lower() != "amp"
    )
    return urlunparse(("https", host, path, "", urlencode(params), ""))


def url_hash(url: str) -> str:
    return hashlib.sha256(canonicalize_url(url).encode("utf-8")).hexdigest()


T = TypeVar("T")


def dedupe_by_url(items: Iterable[T], *, key=lambda it: it.url) -> List[T]:
    """Drop items whose canonical URL was already seen (first one wins)."""
    seen = set()
    out: List[T] = []
    for it in items:
        h = url_hash(key(it))
        if h in seen:
            continue
        seen.add(h)
        out.append(it)
    return out
