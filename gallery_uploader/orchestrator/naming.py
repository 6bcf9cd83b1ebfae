"""Destination key generation for uploaded files."""
import re
import secrets
import time
from typing import Optional

# Characters that break object storage paths or download URLs
_UNSAFE_CHARS = re.compile(r"[#$\[\]*?/\\\x00-\x1f\x7f]")


def sanitize_file_name(name: str) -> str:
    """Replace characters unsafe for the storage namespace with '_'."""
    safe = _UNSAFE_CHARS.sub("_", name.strip())
    return safe or "file"


def build_storage_key(
    destination_id: str,
    file_name: str,
    prefix: str = "galleries",
    timestamp_ms: Optional[int] = None,
) -> str:
    """
    Build a collision-resistant destination key.

    Format: {prefix}/{destination_id}/{timestamp}-{random}-{sanitized name}

    Two files with the same name get different keys thanks to the random part,
    even when they are started in the same millisecond.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    token = secrets.token_hex(4)
    file_id = f"{timestamp_ms}-{token}-{sanitize_file_name(file_name)}"
    parts = [p.strip("/") for p in (prefix, destination_id) if p and p.strip("/")]
    parts.append(file_id)
    return "/".join(parts)
