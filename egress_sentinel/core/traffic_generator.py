"""
Simulates outbound request descriptors for normal, exfiltration, beacon, and mixed traffic.
"""

import json
import random
import string
import uuid
from typing import List, Literal, Optional

from egress_sentinel.core.descriptor import RequestDescriptor

TrafficMode = Literal["normal", "exfiltration", "beacon", "mixed"]

NORMAL_HOSTS = ["api.example.com", "cdn.example.com", "auth.example.com", "static.example.org"]
NORMAL_PATHS = ["/v1/items", "/v1/items/42", "/v1/users/me", "/assets/app.js", "/health", "/v2/search"]
SUSPICIOUS_HOSTS = ["collect.tracker-metrics.io", "x9f3k2.cdn-sync.net", "telemetry.unknown-host.biz"]

BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"


def _token(rng: random.Random, length: int) -> str:
    return "".join(rng.choice(string.ascii_letters + string.digits) for _ in range(length))


def _make_normal(rng: random.Random) -> RequestDescriptor:
    method = rng.choice(["GET", "GET", "GET", "POST"])
    headers = {"Accept": "application/json", "User-Agent": BROWSER_UA}
    body = None
    if method == "POST":
        headers["Content-Type"] = "application/json"
        body = json.dumps({"query": rng.choice(["shoes", "books", "lamps"]), "page": rng.randint(1, 5)})
    query = f"?page={rng.randint(1, 5)}" if rng.random() < 0.5 else ""
    return RequestDescriptor(
        url=f"https://{rng.choice(NORMAL_HOSTS)}{rng.choice(NORMAL_PATHS)}{query}",
        method=method,
        headers=headers,
        body=body,
    )


def _make_exfiltration(rng: random.Random) -> RequestDescriptor:
    payload = {
        "device": str(uuid.UUID(int=rng.getrandbits(128))),
        "session": _token(rng, rng.randint(32, 64)),
        "ip": ".".join(str(rng.randint(1, 254)) for _ in range(4)),
        "blob": _token(rng, rng.randint(2000, 6000)),
    }
    return RequestDescriptor(
        url=f"https://{rng.choice(SUSPICIOUS_HOSTS)}/c/{_token(rng, 12)}/{_token(rng, 8)}/upload",
        method="POST",
        headers={
            "Content-Type": "application/octet-stream",
            "Authorization": "Bearer " + _token(rng, 180),
            "User-Agent": BROWSER_UA,
            "X-Client-Id": _token(rng, 24),
            "X-Trace": _token(rng, 16),
        },
        body=json.dumps(payload),
    )


def _make_beacon(rng: random.Random) -> RequestDescriptor:
    params = "&".join(f"{_token(rng, 4)}={_token(rng, rng.randint(20, 60))}" for _ in range(rng.randint(8, 16)))
    return RequestDescriptor(
        url=f"http://{rng.choice(SUSPICIOUS_HOSTS)}/p.gif?{params}",
        method="GET",
        headers={},
        body=None,
    )


_GENERATORS = {
    "normal": _make_normal,
    "exfiltration": _make_exfiltration,
    "beacon": _make_beacon,
}


def generate_descriptor(mode: TrafficMode, rng: Optional[random.Random] = None) -> RequestDescriptor:
    rng = rng or random.Random()
    if mode == "mixed":
        weights = [0.8, 0.1, 0.1]
        chosen = rng.choices(["normal", "exfiltration", "beacon"], weights=weights)[0]
        return _GENERATORS[chosen](rng)
    return _GENERATORS[mode](rng)


def generate_batch(mode: TrafficMode, n: int, rng: Optional[random.Random] = None) -> List[RequestDescriptor]:
    rng = rng or random.Random()
    return [generate_descriptor(mode, rng) for _ in range(n)]
