"""
Lesson progress for a single target sign.

Counts consecutive recognition events that match the target with enough
confidence. Any miss drops the streak back to zero; reaching the required
streak completes the lesson, once.
"""
import logging
from enum import Enum
from typing import Optional

from signpractice.config import TargetMatchConfig
from signpractice.ml.types import LessonCompleted, RecognitionEvent

logger = logging.getLogger(__name__)


class PracticeState(str, Enum):
    PRACTICING = "practicing"
    COMPLETED = "completed"


class TargetMatcher:

    def __init__(self, target: str, config: Optional[TargetMatchConfig] = None):
        self.target = target
        self.config = config or TargetMatchConfig()
        self.state = PracticeState.PRACTICING
        self.consecutive_correct = 0

    def reset(self) -> None:
        self.state = PracticeState.PRACTICING
        self.consecutive_correct = 0

    @property
    def completed(self) -> bool:
        return self.state is PracticeState.COMPLETED

    @property
    def progress(self) -> float:
        """0.0 - 1.0, for the UI."""
        return min(1.0, self.consecutive_correct / self.config.required_consecutive)

    def observe(self, event: RecognitionEvent) -> Optional[LessonCompleted]:
        if self.completed:
            return None

        if event.label == self.target and event.confidence >= self.config.required_confidence:
            self.consecutive_correct += 1
        else:
            self.consecutive_correct = 0
            return None

        if self.consecutive_correct >= self.config.required_consecutive:
            self.state = PracticeState.COMPLETED
            logger.info("lesson '%s' completed", self.target)
            return LessonCompleted(target=self.target, timestamp=event.timestamp)

        return None
