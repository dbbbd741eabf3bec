class RecognitionError(Exception):
    """Base for errors recovered inside the recognition pipeline."""


class InsufficientGeometry(RecognitionError):
    HAND_CONFIDENCE = "hand_confidence"
    REFERENCE_JOINTS = "reference_joints"
    VALID_JOINTS = "valid_joints"

    def __init__(self, reason: str, message: str = "", valid_joints: int = 0):
        super().__init__(message or reason)
        self.reason = reason
        self.valid_joints = valid_joints


class ClassifierUnavailable(RecognitionError):
    pass
