from typing import Dict, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from signpractice.ml.types import HandObservation, JointName, JointObservation


class LandmarksIn(BaseModel):
    type: Literal["landmarks"] = "landmarks"
    confidence: float = Field(ge=0.0, le=1.0)
    # joint name -> (x, y, confidence); undetected joints are simply left out
    joints: Dict[JointName, Tuple[float, float, float]] = {}

    def to_observation(self) -> HandObservation:
        return HandObservation(
            confidence=self.confidence,
            joints={
                name: JointObservation(name, x, y, c)
                for name, (x, y, c) in self.joints.items()
            },
        )


class FrameIn(BaseModel):
    type: Literal["frame"] = "frame"
    data: str
    ts_ms: Optional[int] = None


class RecognitionOut(BaseModel):
    type: Literal["recognition"] = "recognition"
    label: str
    confidence: float
    progress: Optional[float] = None


class CompletedOut(BaseModel):
    type: Literal["completed"] = "completed"
    target: str
