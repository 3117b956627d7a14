"""
Tracks parameter signatures per endpoint and flags exact repeats.
"""

from typing import Dict, Optional, Set
from urllib.parse import parse_qsl, urlencode, urlsplit


def param_signature(url: str) -> str:
    pairs = parse_qsl(urlsplit(url).query, keep_blank_values=True)
    return urlencode(sorted(pairs))


class RepetitiveRequestTracker:
    """
    Remembers every parameter signature seen for each base URL.

    check() fires on an exact repeat of a signature for the same endpoint;
    a request with new parameters is recorded and not flagged.
    """

    def __init__(self, index: Optional[Dict[str, Set[str]]] = None):
        self._index: Dict[str, Set[str]] = index if index is not None else {}

    def check(self, base_url: str, signature: str) -> bool:
        seen = self._index.setdefault(base_url, set())
        if signature in seen:
            return True
        seen.add(signature)
        return False

    def __len__(self) -> int:
        return len(self._index)
