"""URL safety guards for outbound embed fetches."""

import re
from urllib.parse import urlsplit

_ALLOWED_SCHEMES = {"http", "https"}
_DEFAULT_PORTS = {"http": 80, "https": 443}
_IPV4_PATTERN = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)


def _netloc(url: str) -> str:
    """Return lowercase host[:port] of url, or empty string when unparseable."""
    try:
        parsed = urlsplit(str(url or "").strip())
        # Accessing .port validates it and raises ValueError on garbage
        port = parsed.port
    except ValueError:
        return ""
    hostname = (parsed.hostname or "").lower()
    if not hostname:
        return ""
    if ":" in hostname:
        hostname = f"[{hostname}]"
    if port is None or _DEFAULT_PORTS.get(parsed.scheme.lower()) == port:
        return hostname
    return f"{hostname}:{port}"


def check_url(url: str, site_url: str | None = None) -> tuple[bool, str]:
    """Validate URL scheme/host against SSRF guardrails.

    Returns ``(safe, reason)``. Any parse failure is unsafe. The operator's own
    site host is allowed before any other rule is applied.
    """
    raw = str(url or "").strip()
    try:
        parsed = urlsplit(raw)
        _ = parsed.port
    except ValueError:
        return False, "invalid_url"

    if site_url:
        site_netloc = _netloc(site_url)
        if site_netloc and site_netloc == _netloc(raw):
            return True, "self_host"

    if parsed.scheme.lower() not in _ALLOWED_SCHEMES:
        return False, "invalid_scheme"

    hostname = (parsed.hostname or "").strip().lower()
    if not hostname:
        return False, "missing_hostname"

    if hostname == "localhost":
        return False, "localhost"

    if _IPV4_PATTERN.match(hostname):
        return False, "ipv4_literal"

    # Fully qualified domain names never contain a colon
    if ":" in hostname:
        return False, "ipv6_literal"

    return True, "ok"


def is_unsafe_url(url: str, site_url: str | None = None) -> bool:
    """Return True when url must not be fetched."""
    safe, _ = check_url(url, site_url=site_url)
    return not safe
