"""URL helpers used for result deduplication.

The canonical form of a URL is its lower-cased scheme, host and path with
the query string, fragment and trailing slash discarded. Two results whose
URLs share a canonical form are considered the same page.
"""

from urllib.parse import urlsplit


def normalize_url(url: str) -> str:
    """Return the canonical deduplication key for a URL.

    Args:
        url: Raw result URL as returned by a provider.

    Returns:
        Lower-cased ``scheme://host/path`` without query, fragment or
        trailing slash. Strings that do not parse as absolute URLs are
        lower-cased and stripped as-is.
    """
    raw = (url or "").strip()

    try:
        parts = urlsplit(raw)
        hostname = parts.hostname
    except ValueError:
        return raw.lower().rstrip("/")

    if not parts.scheme or not hostname:
        return raw.lower().rstrip("/")

    path = parts.path.rstrip("/")
    return f"{parts.scheme}://{hostname}{path}".lower()


def extract_domain(url: str) -> str:
    """Extract the host of a URL without a leading ``www.``.

    Args:
        url: Result URL.

    Returns:
        Domain name, or an empty string if the URL has no host.
    """
    try:
        hostname = urlsplit((url or "").strip()).hostname or ""
    except ValueError:
        return ""

    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname
