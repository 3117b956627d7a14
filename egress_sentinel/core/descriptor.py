"""
Outbound request descriptors and the URL/body helpers shared by the detectors.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

from requests.structures import CaseInsensitiveDict


@dataclass(frozen=True)
class RequestDescriptor:
    url: str
    method: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[Any] = None

    def header(self, name: str) -> str:
        return CaseInsensitiveDict(self.headers or {}).get(name) or ""


def is_valid_url(url: Any) -> bool:
    """Absolute URL with a scheme, a network location and a sane port."""
    if not isinstance(url, str) or not url:
        return False
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on out-of-range or non-numeric ports
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc and parts.hostname)


def base_url(url: str) -> str:
    return url.split("?", 1)[0]


def serialize_body(body: Any) -> str:
    # JSON string encoding, so "" serializes to '""'
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return json.dumps(body if body is not None else "", ensure_ascii=False, default=str)


def scannable_body(body: Any) -> str:
    return serialize_body(body) if body else ""
