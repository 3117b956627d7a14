"""
Orchestration layer.

AnomalyDetectionEngine turns each outbound request descriptor into findings:
feature extraction, telemetry update, scheduled retraining, scoring against a
dynamic threshold, repetition tracking and identifier scanning.

Every step runs behind a fail-open boundary. A step that raises is logged and
yields None; the remaining steps, and later ingests, still run.
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional

import numpy as np

from egress_sentinel.config import DEFAULT_CONFIG, EngineConfig
from egress_sentinel.core.descriptor import RequestDescriptor, base_url, is_valid_url, scannable_body
from egress_sentinel.core.feature_engineering import FeatureExtractor
from egress_sentinel.core.findings import AnomalyFinding, Finding, IdentifierFinding, RepetitionFinding
from egress_sentinel.core.identifier_scanner import IdentifierScanner
from egress_sentinel.core.isolation_forest import IsolationForestModel
from egress_sentinel.core.repetition import RepetitiveRequestTracker, param_signature
from egress_sentinel.core.state_store import StateStore
from egress_sentinel.core.telemetry import EngineState
from egress_sentinel.core.threshold import ThresholdEstimator
from egress_sentinel.utils.helpers import generate_request_id, now_ms

logger = logging.getLogger(__name__)
findings_logger = logging.getLogger("egress_sentinel.findings")

FindingSink = Callable[[Finding], None]


def log_finding(finding: Finding) -> None:
    findings_logger.warning("[Anomaly] %s", finding.describe())


class AnomalyDetectionEngine:
    def __init__(
        self,
        config: EngineConfig = DEFAULT_CONFIG,
        store: Optional[StateStore] = None,
        sinks: Optional[Iterable[FindingSink]] = None,
        clock: Callable[[], float] = now_ms,
    ):
        self.config = config
        self.store = store
        self.sinks: List[FindingSink] = list(sinks) if sinks is not None else [log_finding]
        self._clock = clock
        self._lock = threading.RLock()
        self._seed_sequence = np.random.SeedSequence(config.random_seed)

        self.feature_extractor = FeatureExtractor()
        self.identifier_scanner = IdentifierScanner()
        self.threshold_estimator = ThresholdEstimator(
            percentile=config.percentile,
            default_threshold=config.default_threshold,
        )

        self._state = self._load_state()
        self._state.rebound(config)
        self._tracker = RepetitiveRequestTracker(self._state.repetitive_requests)
        self._state.total_runs += 1
        self._persist()
        logger.info(
            "Monitoring initialized (run %d, %d requests in history, model %s)",
            self._state.total_runs,
            len(self._state.requests),
            "loaded" if self._state.model is not None else "pending",
        )

    # ── state ──

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def model(self) -> Optional[IsolationForestModel]:
        return self._state.model

    def current_threshold(self) -> float:
        with self._lock:
            return self.threshold_estimator.threshold(self._state.anomaly_scores)

    def _load_state(self) -> EngineState:
        if self.store is not None:
            try:
                state = self.store.load_state()
            except Exception:
                logger.warning("Could not load engine state; starting fresh", exc_info=True)
            else:
                if state is not None:
                    return state
        return EngineState.empty(self.config, now_ms=self._clock())

    def _persist(self) -> bool:
        if self.store is None:
            return False
        try:
            self.store.save_state(self._state)
        except Exception:
            logger.warning("Could not persist engine state; keeping in-memory state", exc_info=True)
            return False
        return True

    def reset(self) -> None:
        with self._lock:
            total_runs = self._state.total_runs
            self._state = EngineState.empty(self.config, now_ms=self._clock())
            self._state.total_runs = total_runs
            self._tracker = RepetitiveRequestTracker(self._state.repetitive_requests)
            self._persist()

    # ── feedback ──

    def report_false_positive(self, request_id: str) -> None:
        with self._lock:
            self._state.feedback.false_positives.append(request_id)
            self._persist()

    def report_false_negative(self, request_id: str) -> None:
        with self._lock:
            self._state.feedback.false_negatives.append(request_id)
            self._persist()

    # ── ingestion ──

    def ingest(self, descriptor: RequestDescriptor) -> List[Finding]:
        with self._lock:
            return self._ingest(descriptor)

    def _ingest(self, descriptor: RequestDescriptor) -> List[Finding]:
        url = getattr(descriptor, "url", None)
        if not is_valid_url(url):
            logger.debug("Skipping request with malformed URL: %r", url)
            return []

        request_id = generate_request_id()
        endpoint = base_url(url)
        findings: List[Finding] = []

        vector = self._step("extract features", self._record_request, descriptor, endpoint)
        if vector is not None:
            self._step("retrain model", self._maybe_retrain)
            anomaly = self._step("score request", self._score, request_id, url, vector)
            if anomaly is not None:
                findings.append(anomaly)

        repetition = self._step("check repetition", self._check_repetition, request_id, url, endpoint)
        if repetition is not None:
            findings.append(repetition)

        identifiers = self._step("scan identifiers", self._scan_identifiers, request_id, url, descriptor)
        if identifiers is not None:
            findings.append(identifiers)

        for finding in findings:
            self._emit(finding)
        self._persist()
        return findings

    def _step(self, name: str, func, *args):
        try:
            return func(*args)
        except Exception:
            logger.warning("Step '%s' failed; continuing", name, exc_info=True)
            return None

    def _record_request(self, descriptor: RequestDescriptor, endpoint: str) -> np.ndarray:
        # frequency is read before this request is counted
        vector = self.feature_extractor.extract(descriptor, self._state.request_frequency)
        self._state.record_request(vector, endpoint)
        return vector

    def should_retrain(self, now: float) -> bool:
        state = self._state
        if len(state.requests) < self.config.min_training_size:
            return False
        if state.model is None:
            return True
        return now - state.last_retrain_time > self.config.retrain_interval_ms

    def _maybe_retrain(self) -> bool:
        now = self._clock()
        if not self.should_retrain(now):
            return False
        self.retrain(now)
        return True

    def retrain(self, now: Optional[float] = None) -> IsolationForestModel:
        """Build a new forest on the current history and swap it in."""
        with self._lock:
            cfg = self.config
            model = IsolationForestModel(
                num_trees=cfg.num_trees,
                sample_size=cfg.sample_size,
                max_depth=cfg.max_depth,
                leaf_correction=cfg.leaf_correction,
                random_state=np.random.default_rng(self._seed_sequence.spawn(1)[0]),
            )
            model.train(self._state.training_window())
            self._state.model = model
            self._state.last_retrain_time = self._clock() if now is None else now
            logger.info(
                "Isolation forest retrained on %d requests (%d trees)",
                model.reference_size,
                len(model.trees),
            )
            return model

    def _score(self, request_id: str, url: str, vector: np.ndarray) -> Optional[AnomalyFinding]:
        model = self._state.model
        if model is None:
            return None
        reference_size = len(self._state.requests) if self.config.normalization == "live" else None
        score = model.predict(vector, reference_size=reference_size)
        self._state.record_score(score)
        threshold = self.threshold_estimator.threshold(self._state.anomaly_scores)
        logger.debug("Request %s scored %.4f (threshold %.4f)", request_id, score, threshold)
        if score > threshold:
            return AnomalyFinding(request_id=request_id, url=url, score=score, threshold=threshold)
        return None

    def _check_repetition(self, request_id: str, url: str, endpoint: str) -> Optional[RepetitionFinding]:
        if self._tracker.check(endpoint, param_signature(url)):
            return RepetitionFinding(request_id=request_id, url=url)
        return None

    def _scan_identifiers(
        self, request_id: str, url: str, descriptor: RequestDescriptor
    ) -> Optional[IdentifierFinding]:
        identifiers = self.identifier_scanner.scan(scannable_body(descriptor.body))
        if identifiers:
            return IdentifierFinding(request_id=request_id, url=url, identifiers=identifiers)
        return None

    def _emit(self, finding: Finding) -> None:
        for sink in self.sinks:
            try:
                sink(finding)
            except Exception:
                logger.warning("Finding sink %r failed", sink, exc_info=True)
