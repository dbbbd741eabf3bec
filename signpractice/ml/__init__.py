from .errors import ClassifierUnavailable, InsufficientGeometry, RecognitionError
from .recognizer import FrameOutcome, RecognizerSession
from .types import (
    ClassificationResult,
    HandObservation,
    JointName,
    JointObservation,
    LessonCompleted,
    RecognitionEvent,
)
