"""
URL utilities for webgrab.

Provides reference canonicalization (the frontier's dedup key) and host extraction.
"""

from urllib.parse import urljoin, urlsplit, urlunsplit

from webgrab.exceptions import InvalidReferenceError

# Schemes whose empty path means the root document
HIERARCHICAL_SCHEMES = frozenset(["http", "https"])

DEFAULT_PORTS = {"http": 80, "https": 443}


def _strip_default_port(scheme: str, hostport: str) -> str:
    """Drop an explicit port that is the default for the scheme."""
    port = DEFAULT_PORTS.get(scheme)
    if port is not None and hostport.endswith(f":{port}"):
        return hostport[: -len(f":{port}")]
    return hostport


def get_host(url: str) -> str:
    """
    Extract the host (with any non-default port, without user info) from a URL.

    Args:
        url: The URL to extract the host from.

    Returns:
        Lowercased ``host[:port]``, or an empty string if there is none.
    """
    parts = urlsplit(url)
    hostport = parts.netloc.rpartition("@")[2].lower()
    return _strip_default_port(parts.scheme.lower(), hostport)


def canonicalize(href: str | None, base_uri: str) -> str | None:
    """
    Resolve a raw href against its document URI and strip the fragment.

    Two references that differ only in their fragment canonicalize to the
    same string.

    Args:
        href: Raw ``href`` attribute value (may be None, empty or relative).
        base_uri: Resolved URI of the document the href was found on.

    Returns:
        The canonical absolute URI, or None for references that name no
        other document (missing, empty, or a bare ``#``).

    Raises:
        InvalidReferenceError: If the reference cannot be resolved.
    """
    if href is None:
        return None
    href = href.strip()
    if not href or href == "#":
        return None

    try:
        parts = urlsplit(urljoin(base_uri, href))
        # Accessing port validates it
        parts.port
    except ValueError as e:
        raise InvalidReferenceError(href, base_uri, str(e)) from e

    scheme = parts.scheme.lower()
    if not scheme:
        raise InvalidReferenceError(href, base_uri, "does not resolve to an absolute URI")

    userinfo, at, hostport = parts.netloc.rpartition("@")
    hostport = _strip_default_port(scheme, hostport.lower())
    netloc = f"{userinfo}{at}{hostport}"

    path = parts.path
    if not path and netloc and scheme in HIERARCHICAL_SCHEMES:
        path = "/"

    return urlunsplit((scheme, netloc, path, parts.query, ""))
