# utils.py
"""
Utility functions for the SignDesk application.
"""

from typing import Optional
from urllib.parse import urlparse


def is_safe_next_path(target: Optional[str]) -> bool:
    """
    True when a post-login redirect target stays on this site.

    Only absolute paths are accepted; anything with a scheme, a host or a
    protocol-relative prefix is rejected.
    """
    if not target or not target.startswith('/') or target.startswith('//'):
        return False
    if '\\' in target:
        return False
    parsed = urlparse(target)
    return not parsed.scheme and not parsed.netloc


def safe_next_path(target: Optional[str], default: str = '/dashboard') -> str:
    return target if is_safe_next_path(target) else default


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB")
    """
    if not size_bytes:
        return 'Unknown'

    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024

    return f"{size_bytes:.1f} TB"


def same_site_path(url: Optional[str], host: str) -> Optional[str]:
    """
    Path (and query) of a URL on this host, e.g. a Referer header.
    Returns None for anything pointing elsewhere.
    """
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.scheme not in ('', 'http', 'https') or (parsed.netloc and parsed.netloc != host):
        return None
    path = parsed.path or '/'
    if parsed.query:
        path = f"{path}?{parsed.query}"
    return path if is_safe_next_path(path) else None
