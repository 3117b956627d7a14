"""
Shared utility functions.
"""

import secrets
import time
from typing import Dict, Iterable, List

import pandas as pd

from egress_sentinel.core.findings import Finding
from egress_sentinel.core.telemetry import FeedbackLog

_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

FINDING_COLUMNS = ["kind", "request_id", "url", "score", "threshold", "identifiers"]


def now_ms() -> float:
    return time.time() * 1000.0


def generate_request_id() -> str:
    return "req-" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))


def findings_to_dataframe(findings: Iterable[Finding]) -> pd.DataFrame:
    rows = [f.to_dict() for f in findings]
    if not rows:
        return pd.DataFrame(columns=FINDING_COLUMNS)
    df = pd.DataFrame(rows)
    if "identifiers" in df:
        df["identifiers"] = df["identifiers"].map(
            lambda ids: ", ".join(ids) if isinstance(ids, list) else ids
        )
    return df.reindex(columns=FINDING_COLUMNS)


def feedback_to_dataframe(feedback: FeedbackLog) -> pd.DataFrame:
    rows = (
        [{"request_id": rid, "feedback": "false_positive"} for rid in feedback.false_positives]
        + [{"request_id": rid, "feedback": "false_negative"} for rid in feedback.false_negatives]
    )
    return pd.DataFrame(rows, columns=["request_id", "feedback"])


def top_endpoints(request_frequency: Dict[str, int], max_rows: int = 100) -> List[Dict]:
    ranked = sorted(request_frequency.items(), key=lambda item: item[1], reverse=True)
    return [{"base_url": url, "requests": count} for url, count in ranked[:max_rows]]
