"""
Converts RequestDescriptor objects into numerical feature vectors for the isolation forest.
Values are raw magnitudes; no scaling is applied.
"""

from typing import List, Mapping
from urllib.parse import urlsplit

import numpy as np

from egress_sentinel.core.descriptor import RequestDescriptor, base_url, serialize_body

FEATURE_NAMES = [
    "url_length",
    "method_length",
    "body_length",
    "header_count",
    "content_type_length",
    "authorization_length",
    "user_agent_length",
    "hostname_length",
    "path_depth",
    "query_length",
    "request_frequency",
]

NUM_FEATURES = len(FEATURE_NAMES)


class FeatureExtractor:
    def extract(self, descriptor: RequestDescriptor, frequency_map: Mapping[str, int]) -> np.ndarray:
        parts = urlsplit(descriptor.url)
        headers = descriptor.headers or {}

        vector = np.array([
            len(descriptor.url),
            len(descriptor.method or ""),
            len(serialize_body(descriptor.body)),
            len(headers),
            len(descriptor.header("Content-Type")),
            len(descriptor.header("Authorization")),
            len(descriptor.header("User-Agent")),
            len(parts.hostname or ""),
            len((parts.path or "/").split("/")),
            len(parts.query),
            frequency_map.get(base_url(descriptor.url), 0),
        ], dtype=float)
        vector.flags.writeable = False
        return vector

    def extract_batch(self, descriptors: List[RequestDescriptor], frequency_map: Mapping[str, int]) -> np.ndarray:
        if not descriptors:
            return np.empty((0, NUM_FEATURES), dtype=float)
        return np.vstack([self.extract(d, frequency_map) for d in descriptors])
