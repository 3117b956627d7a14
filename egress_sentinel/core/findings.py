"""
Findings emitted by the detection engine.
"""

from dataclasses import dataclass
from typing import FrozenSet, Literal, Union

FindingKind = Literal["ANOMALY", "REPETITION", "IDENTIFIERS"]


@dataclass(frozen=True)
class AnomalyFinding:
    request_id: str
    url: str
    score: float
    threshold: float
    kind: FindingKind = "ANOMALY"

    def describe(self) -> str:
        return (
            f"Anomalous Network Request Detected [ID: {self.request_id}]: {self.url} "
            f"(Score: {self.score:.2f}, Threshold: {self.threshold:.2f})"
        )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "request_id": self.request_id,
            "url": self.url,
            "score": self.score,
            "threshold": self.threshold,
        }


@dataclass(frozen=True)
class RepetitionFinding:
    request_id: str
    url: str
    kind: FindingKind = "REPETITION"

    def describe(self) -> str:
        return f"Repetitive Request Detected [ID: {self.request_id}]: {self.url}"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "request_id": self.request_id,
            "url": self.url,
        }


@dataclass(frozen=True)
class IdentifierFinding:
    request_id: str
    url: str
    identifiers: FrozenSet[str]
    kind: FindingKind = "IDENTIFIERS"

    def describe(self) -> str:
        return (
            f"Identifiers Detected in Request [ID: {self.request_id}]: {self.url} "
            f"{sorted(self.identifiers)}"
        )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "request_id": self.request_id,
            "url": self.url,
            "identifiers": sorted(self.identifiers),
        }


Finding = Union[AnomalyFinding, RepetitionFinding, IdentifierFinding]
