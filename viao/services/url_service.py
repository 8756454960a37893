"""Public origin resolution for redirects.

The app runs behind a reverse proxy, so request.host_url is often an
internal address. Redirect targets (and Stripe success/cancel URLs) are
built from, in order:

1. APP_URL, unless it points at localhost
2. X-Forwarded-Host / X-Forwarded-Proto (or Host) request headers
3. the raw request origin
"""

import re
from urllib.parse import urlencode, urlparse

LOCAL_HOSTS = ("localhost", "127.0.0.1", "0.0.0.0")

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_url(value):
    """Trim, default the scheme to https and drop trailing slashes."""
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if not _SCHEME_RE.match(trimmed):
        trimmed = f"https://{trimmed}"
    return trimmed.rstrip("/")


def is_localhost_url(value):
    if not value:
        return False
    try:
        host = urlparse(value).hostname
    except ValueError:
        return False
    return host in LOCAL_HOSTS


def _first_header_value(headers, name):
    return (headers.get(name) or "").split(",")[0].strip()


def resolve_public_origin(request, app_config):
    """Return the public base URL (scheme://host[:port], no trailing slash)."""
    env_app_url = normalize_url(app_config.get("APP_URL"))
    if env_app_url and not is_localhost_url(env_app_url):
        return env_app_url

    forwarded_proto = _first_header_value(request.headers, "X-Forwarded-Proto")
    forwarded_host = _first_header_value(request.headers, "X-Forwarded-Host")
    host = _first_header_value(request.headers, "Host")

    proto = forwarded_proto or "https"
    derived = None
    if forwarded_host:
        derived = normalize_url(f"{proto}://{forwarded_host}")
    elif host and forwarded_proto:
        derived = normalize_url(f"{proto}://{host}")

    return derived or normalize_url(request.host_url) or env_app_url


def build_redirect(origin, path, **params):
    """Join origin + path and append the non-empty query params."""
    query = urlencode({k: v for k, v in params.items() if v})
    if not query:
        return f"{origin}{path}"
    sep = "&" if "?" in path else "?"
    return f"{origin}{path}{sep}{query}"
