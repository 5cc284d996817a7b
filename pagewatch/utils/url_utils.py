"""
URL manipulation utilities for pagewatch.

Provides domain extraction, resolution, and validation.
"""

from urllib.parse import urldefrag, urljoin, urlparse

SUPPORTED_SCHEMES = frozenset(["http", "https", "file"])


def get_domain(url: str) -> str:
    """
    Extract the domain (host) from a URL.

    Args:
        url: The URL to extract domain from.

    Returns:
        The domain/host portion of the URL, or "local" for file URLs.
    """
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return "local"
    return parsed.netloc.lower()


def get_scheme(url: str) -> str:
    """
    Extract the scheme (protocol) from a URL.

    Args:
        url: The URL to extract scheme from.

    Returns:
        The scheme (e.g., 'http', 'https').
    """
    return urlparse(url).scheme.lower()


def resolve_url(base_url: str, relative_url: str) -> str:
    """
    Resolve a possibly relative URL against a base URL.

    The fragment is dropped; it never addresses a different document.

    Args:
        base_url: The base URL (the page the reference was found on).
        relative_url: The reference to resolve.

    Returns:
        Absolute URL without fragment.
    """
    absolute = urljoin(base_url, relative_url.strip())
    return urldefrag(absolute).url


def is_valid_url(url: str) -> bool:
    """
    Check if a URL is valid and can be fetched.

    Args:
        url: The URL to validate.

    Returns:
        True if the URL is valid.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if parsed.scheme not in SUPPORTED_SCHEMES:
        return False
    if parsed.scheme == "file":
        return bool(parsed.path)
    return bool(parsed.netloc)


def is_allowed_continuation(current_url: str, next_url: str) -> bool:
    """
    Check whether a walk may follow a continuation.

    The target must use a supported scheme, and file URLs are only
    reachable from pages that were themselves read from disk.

    Args:
        current_url: URL of the page the continuation was found on.
        next_url: Resolved continuation URL.

    Returns:
        True if the continuation may be followed.
    """
    if not is_valid_url(next_url):
        return False
    if get_scheme(next_url) == "file":
        return get_scheme(current_url) == "file"
    return True
