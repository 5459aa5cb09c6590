"""URL manipulation utilities."""

import re
from urllib.parse import urljoin, urlparse, urlunparse

IPFS_GATEWAY = "https://dweb.link/ipfs/"

BINARY_EXTENSIONS = (
    ".epub", ".mobi", ".azw3", ".azw", ".pdf", ".djvu", ".fb2", ".txt", ".rtf",
    ".cbz", ".cbr", ".zip", ".rar", ".7z",
)

# Hosts whose links are already stable file URLs.
DIRECT_DOWNLOAD_HOSTS = (
    "library.lol",
    "cloudflare-ipfs.com",
    "ipfs.io",
    "dweb.link",
)

_DOWNLOAD_ENDPOINT_RE = re.compile(
    r"(/get\.php\?|/dl/|/download/|/ipfs/|cloudflare)", re.IGNORECASE
)
_MD5_RE = re.compile(r"(?<![0-9a-f])([0-9a-f]{32})(?![0-9a-f])", re.IGNORECASE)
_EXCLUDED_FRAGMENTS = ("/search?", "/member_codes?", "filepath:", "doi.org/")


def normalize_url(url: str) -> str:
    """Normalize a URL by removing fragments and trailing slashes."""
    parsed = urlparse(url)
    # Remove fragment
    normalized = parsed._replace(fragment="")
    # Remove trailing slash from path (except for root)
    path = normalized.path.rstrip("/") if normalized.path != "/" else "/"
    normalized = normalized._replace(path=path)
    return urlunparse(normalized)


def make_absolute(base_url: str, href: str) -> str:
    """Convert a potentially relative URL to absolute."""
    if href.startswith("ipfs://"):
        return ipfs_to_gateway(href)
    return urljoin(base_url, href)


def ipfs_to_gateway(url: str) -> str:
    """Rewrite an ``ipfs://`` link to an HTTP gateway URL."""
    if not url.startswith("ipfs://"):
        return url
    return IPFS_GATEWAY + url[len("ipfs://"):].lstrip("/")


def is_http_url(url: str) -> bool:
    return urlparse(url).scheme in ("http", "https")


def is_onion(url: str) -> bool:
    host = urlparse(url).hostname or ""
    return host.endswith(".onion")


def is_binary_url(url: str) -> bool:
    """Check if a URL path ends in an ebook or archive file extension."""
    path = urlparse(url).path.lower()
    return path.endswith(BINARY_EXTENSIONS)


def is_download_endpoint(url: str) -> bool:
    """Check if a URL looks like a file-serving endpoint rather than a page."""
    return bool(_DOWNLOAD_ENDPOINT_RE.search(url))


def is_direct_download_host(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return any(host == h or host.endswith(f".{h}") for h in DIRECT_DOWNLOAD_HOSTS)


def is_download_url(url: str) -> bool:
    """Whether a resolved link can be handed to the caller as a file URL."""
    if not is_http_url(url) or is_onion(url):
        return False
    return is_binary_url(url) or is_download_endpoint(url) or is_direct_download_host(url)


def is_excluded_link(url: str) -> bool:
    """Search, member and metadata links that never lead to a file."""
    return any(fragment in url for fragment in _EXCLUDED_FRAGMENTS)


def extract_md5(url: str) -> str | None:
    """Return the first MD5 digest embedded in a URL, lowercased."""
    match = _MD5_RE.search(url)
    return match.group(1).lower() if match else None
