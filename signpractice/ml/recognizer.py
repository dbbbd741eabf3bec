from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from enum import Enum
from typing import Callable, Optional

from signpractice.config import RecognizerConfig
from signpractice.ml.errors import ClassifierUnavailable, InsufficientGeometry
from signpractice.ml.events import EventChannel
from signpractice.ml.model import Classifier, top_result
from signpractice.ml.normalizer import LandmarkNormalizer
from signpractice.ml.throttle import InferenceThrottle
from signpractice.ml.types import HandObservation
from signpractice.ml.voter import ConsensusVoter
from signpractice.practice.target_match import TargetMatcher

logger = logging.getLogger(__name__)


class FrameOutcome(str, Enum):
    STOPPED = "stopped"
    NO_HAND = "no_hand"
    INSUFFICIENT_GEOMETRY = "insufficient_geometry"
    THROTTLED = "throttled"
    CLASSIFIER_UNAVAILABLE = "classifier_unavailable"
    LOW_CONFIDENCE = "low_confidence"
    PENDING = "pending"
    RECOGNIZED = "recognized"


class RecognizerSession:
    """
    Recognition session (stateful):
    - landmark normalization + quality gate
    - inference throttle
    - consensus voting over recent classifications
    - optional lesson target matching

    All per-session state lives here. `start()` resets it; `stop()` makes every
    later `process()` call a no-op. One frame is evaluated at a time under a
    single lock, so the history/stability/throttle state is never seen half
    updated even if frames come from several threads.
    """

    def __init__(
        self,
        config: RecognizerConfig,
        classifier: Classifier,
        target: Optional[str] = None,
        events: Optional[EventChannel] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.classifier = classifier
        self.clock = clock

        self.normalizer = LandmarkNormalizer(config.normalizer)
        self.throttle = InferenceThrottle(config.throttle.interval_s, clock=clock)
        self.voter = ConsensusVoter(config.voter)
        self.matcher = TargetMatcher(target, config.target_match) if target else None
        self.events = events or EventChannel()

        self.stats: Counter = Counter()
        self._lock = threading.Lock()
        self._running = threading.Event()

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def start(self, now: Optional[float] = None) -> None:
        now = self.clock() if now is None else now
        with self._lock:
            self.voter.reset()
            self.throttle.reset(now)
            if self.matcher is not None:
                self.matcher.reset()
            self.stats.clear()
            self.events.reopen()
            self._running.set()
        logger.info("recognizer started (profile=%s, target=%s)",
                    self.config.name, self.matcher.target if self.matcher else None)

    def stop(self) -> None:
        # no lock: a frame already being evaluated finishes, nothing after it runs
        if self._running.is_set():
            self._running.clear()
            logger.info("recognizer stopped, stats=%s", dict(self.stats))

    def _outcome(self, outcome: FrameOutcome) -> FrameOutcome:
        self.stats[outcome.value] += 1
        return outcome

    def _gate_reject(self, outcome: FrameOutcome) -> FrameOutcome:
        if self.config.reset_on_gate_reject:
            self.voter.reset_stability()
        return self._outcome(outcome)

    def process(self, observation: Optional[HandObservation], now: Optional[float] = None) -> FrameOutcome:
        if not self._running.is_set():
            return FrameOutcome.STOPPED

        with self._lock:
            if not self._running.is_set():
                return FrameOutcome.STOPPED
            return self._evaluate(observation, self.clock() if now is None else now)

    def _evaluate(self, observation: Optional[HandObservation], now: float) -> FrameOutcome:
        if observation is None:
            return self._gate_reject(FrameOutcome.NO_HAND)

        try:
            features = self.normalizer.normalize(observation)
        except InsufficientGeometry as e:
            logger.debug("frame rejected: %s", e)
            return self._gate_reject(FrameOutcome.INSUFFICIENT_GEOMETRY)

        if not self.throttle.ready(now):
            return self._outcome(FrameOutcome.THROTTLED)

        try:
            result = top_result(self.classifier.predict(features))
            if result is None:
                raise ClassifierUnavailable("classifier returned no labels")
        except Exception as e:
            logger.warning("classifier unavailable: %s", e)
            self.throttle.mark(now)
            return self._outcome(FrameOutcome.CLASSIFIER_UNAVAILABLE)

        # measured from the last evaluation, not the last emission
        self.throttle.mark(now)

        low_confidence = result.probability < self.config.voter.confidence_floor
        event = self.voter.submit(result, now)
        if low_confidence:
            return self._outcome(FrameOutcome.LOW_CONFIDENCE)
        if event is None:
            return self._outcome(FrameOutcome.PENDING)

        logger.info("recognized %s (%.2f)", event.label, event.confidence)
        self.events.publish(event)

        if self.matcher is not None:
            completed = self.matcher.observe(event)
            if completed is not None:
                self.events.publish(completed)

        return self._outcome(FrameOutcome.RECOGNIZED)
