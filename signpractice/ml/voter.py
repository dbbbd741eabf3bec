from __future__ import annotations

import logging
import time
from collections import Counter, deque
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from signpractice.config import VoterConfig
from signpractice.ml.types import ClassificationResult, RecognitionEvent

logger = logging.getLogger(__name__)


class PredictionHistory:
    """Last `window` classification results, oldest evicted first."""

    def __init__(self, window: int):
        self.window = window
        self._items: deque[ClassificationResult] = deque(maxlen=window)

    def append(self, result: ClassificationResult) -> None:
        self._items.append(result)

    def clear(self) -> None:
        self._items.clear()

    def labels(self) -> List[str]:
        return [r.label for r in self._items]

    def probabilities(self, label: str) -> List[float]:
        return [r.probability for r in self._items if r.label == label]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ClassificationResult]:
        return iter(self._items)


def majority(history: PredictionHistory) -> Tuple[Optional[str], int]:
    """
    Most frequent label and its count.
    Ties go to the label among them that was inserted most recently.
    """
    labels = history.labels()
    if not labels:
        return None, 0

    counts = Counter(labels)
    top = max(counts.values())
    for label in reversed(labels):
        if counts[label] == top:
            return label, top
    return None, 0  # unreachable


@dataclass
class StabilityState:
    last_label: Optional[str] = None
    count: int = 0

    def reset(self) -> None:
        self.last_label = None
        self.count = 0

    def advance(self, label: str) -> int:
        if label == self.last_label:
            self.count += 1
        else:
            self.last_label = label
            self.count = 1
        return self.count


class ConsensusVoter:
    """
    Sliding-window majority vote + cross-round stability before a label is
    reported. One noisy classification cannot flip the output, and a new
    sign has to hold for `stability_rounds` evaluations.
    """

    def __init__(self, config: VoterConfig):
        self.config = config
        self.history = PredictionHistory(config.window)
        self.stability = StabilityState()

    def reset(self) -> None:
        self.history.clear()
        self.stability.reset()

    def reset_stability(self) -> None:
        self.stability.reset()

    def submit(self, result: ClassificationResult, now: Optional[float] = None) -> Optional[RecognitionEvent]:
        cfg = self.config

        if result.probability < cfg.confidence_floor:
            self.stability.reset()
            return None

        self.history.append(result)

        label, votes = majority(self.history)
        if label is None or votes < cfg.min_support:
            self.stability.reset()
            return None

        probs = self.history.probabilities(label)
        avg_conf = sum(probs) / len(probs)
        if avg_conf <= cfg.aggregate_confidence_floor:
            self.stability.reset()
            return None

        rounds = self.stability.advance(label)
        if rounds < cfg.stability_rounds:
            logger.debug("majority %s (%d/%d), stable for %d round(s)",
                         label, votes, len(self.history), rounds)
            return None

        return RecognitionEvent(
            label=label,
            confidence=avg_conf,
            timestamp=time.monotonic() if now is None else now,
        )

    def snapshot(self) -> dict:
        label, votes = majority(self.history)
        return {
            "history": self.history.labels(),
            "majority": label,
            "votes": votes,
            "stable_label": self.stability.last_label,
            "stable_rounds": self.stability.count,
        }
