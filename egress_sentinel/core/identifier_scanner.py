"""
Scans serialized request bodies for identifiers that look like tracking or
fingerprinting material: UUIDs, long opaque tokens and IPv4 addresses.
"""

import logging
import re
from typing import FrozenSet

logger = logging.getLogger(__name__)

# ASCII semantics for \d and \b: non-ASCII digits are not address octets
IDENTIFIER_PATTERNS = {
    "uuid": re.compile(r"[a-fA-F0-9]{8}-[a-fA-F0-9]{4}-[a-fA-F0-9]{4}-[a-fA-F0-9]{4}-[a-fA-F0-9]{12}", re.ASCII),
    "token": re.compile(r"[a-zA-Z0-9_-]{20,}", re.ASCII),
    "ipv4": re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b", re.ASCII),
}


class IdentifierScanner:
    def scan(self, body_text: str) -> FrozenSet[str]:
        try:
            found = set()
            for pattern in IDENTIFIER_PATTERNS.values():
                found.update(pattern.findall(body_text))
            return frozenset(found)
        except Exception:
            logger.debug("Identifier scan failed; treating body as clean", exc_info=True)
            return frozenset()
