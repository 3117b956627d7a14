"""
Telemetry state shared by the detectors: bounded request and score histories,
per-endpoint counters, the repetition index, analyst feedback and the model.

EngineState is the unit exchanged with the persistence collaborator.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Set

import numpy as np

from egress_sentinel.config import DEFAULT_CONFIG, EngineConfig
from egress_sentinel.core.isolation_forest import IsolationForestModel


@dataclass
class FeedbackLog:
    false_positives: List[str] = field(default_factory=list)
    false_negatives: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "false_positives": list(self.false_positives),
            "false_negatives": list(self.false_negatives),
        }


@dataclass
class EngineState:
    requests: Deque[np.ndarray]
    anomaly_scores: Deque[float]
    request_frequency: Dict[str, int] = field(default_factory=dict)
    repetitive_requests: Dict[str, Set[str]] = field(default_factory=dict)
    feedback: FeedbackLog = field(default_factory=FeedbackLog)
    model: Optional[IsolationForestModel] = None
    last_retrain_time: float = 0.0
    total_runs: int = 0

    @classmethod
    def empty(cls, config: EngineConfig = DEFAULT_CONFIG, now_ms: float = 0.0) -> "EngineState":
        return cls(
            requests=deque(maxlen=config.max_request_history),
            anomaly_scores=deque(maxlen=config.max_score_history),
            last_retrain_time=now_ms,
        )

    def rebound(self, config: EngineConfig) -> None:
        """Re-apply history caps; the newest entries survive a shrink."""
        if self.requests.maxlen != config.max_request_history:
            self.requests = deque(self.requests, maxlen=config.max_request_history)
        if self.anomaly_scores.maxlen != config.max_score_history:
            self.anomaly_scores = deque(self.anomaly_scores, maxlen=config.max_score_history)

    def record_request(self, vector: np.ndarray, base_url: str) -> None:
        self.requests.append(vector)
        self.request_frequency[base_url] = self.request_frequency.get(base_url, 0) + 1

    def record_score(self, score: float) -> None:
        self.anomaly_scores.append(score)

    def training_window(self) -> np.ndarray:
        if not self.requests:
            return np.empty((0, 0), dtype=float)
        return np.vstack(list(self.requests))

    def to_dict(self) -> dict:
        return {
            "requests": [vector.tolist() for vector in self.requests],
            "anomaly_scores": list(self.anomaly_scores),
            "request_frequency": dict(self.request_frequency),
            "repetitive_requests": {url: sorted(sigs) for url, sigs in self.repetitive_requests.items()},
            "feedback": self.feedback.to_dict(),
            "model": self.model.to_dict() if self.model is not None else None,
            "last_retrain_time": self.last_retrain_time,
            "total_runs": self.total_runs,
        }

    @classmethod
    def from_dict(cls, data: dict, config: EngineConfig = DEFAULT_CONFIG) -> "EngineState":
        requests = deque(maxlen=config.max_request_history)
        for values in data.get("requests", []):
            vector = np.asarray(values, dtype=float)
            vector.flags.writeable = False
            requests.append(vector)

        feedback = data.get("feedback") or {}
        model = data.get("model")
        return cls(
            requests=requests,
            anomaly_scores=deque(
                (float(s) for s in data.get("anomaly_scores", [])),
                maxlen=config.max_score_history,
            ),
            request_frequency={url: int(n) for url, n in data.get("request_frequency", {}).items()},
            repetitive_requests={
                url: set(sigs) for url, sigs in data.get("repetitive_requests", {}).items()
            },
            feedback=FeedbackLog(
                false_positives=list(feedback.get("false_positives", [])),
                false_negatives=list(feedback.get("false_negatives", [])),
            ),
            model=IsolationForestModel.from_dict(model) if model else None,
            last_retrain_time=float(data.get("last_retrain_time", 0.0)),
            total_runs=int(data.get("total_runs", 0)),
        )
