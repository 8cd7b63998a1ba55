"""Source URL canonicalization for job de-duplication."""

from urllib.parse import urlsplit, urlunsplit

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_source_url(url: str) -> str:
    """Canonical form of a job URL.

    Drops query and fragment, lower-cases scheme and host, removes default
    ports and trailing slashes. Unparseable input is returned trimmed.
    """
    trimmed = url.strip()
    try:
        parts = urlsplit(trimmed)
        port = parts.port
    except ValueError:
        return trimmed
    if not parts.scheme or not parts.hostname:
        return trimmed.rstrip("/")

    scheme = parts.scheme.lower()
    netloc = parts.hostname.lower()
    if ":" in netloc:
        netloc = f"[{netloc}]"
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{netloc}:{port}"
    path = parts.path.rstrip("/")
    return urlunsplit((scheme, netloc, path, "", ""))
