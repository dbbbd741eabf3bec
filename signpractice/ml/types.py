from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

import numpy as np


class JointName(str, Enum):
    WRIST = "wrist"
    THUMB_CMC = "thumb_cmc"
    THUMB_MP = "thumb_mp"
    THUMB_IP = "thumb_ip"
    THUMB_TIP = "thumb_tip"
    INDEX_MCP = "index_mcp"
    INDEX_PIP = "index_pip"
    INDEX_DIP = "index_dip"
    INDEX_TIP = "index_tip"
    MIDDLE_MCP = "middle_mcp"
    MIDDLE_PIP = "middle_pip"
    MIDDLE_DIP = "middle_dip"
    MIDDLE_TIP = "middle_tip"
    RING_MCP = "ring_mcp"
    RING_PIP = "ring_pip"
    RING_DIP = "ring_dip"
    RING_TIP = "ring_tip"
    LITTLE_MCP = "little_mcp"
    LITTLE_PIP = "little_pip"
    LITTLE_DIP = "little_dip"
    LITTLE_TIP = "little_tip"


# Column order of the classifier input. Same as the MediaPipe landmark indices.
JOINT_ORDER: Tuple[JointName, ...] = tuple(JointName)

# (channels, joints): normalized x, normalized y, confidence
FEATURE_SHAPE = (3, len(JOINT_ORDER))

FeatureVector = np.ndarray


@dataclass(frozen=True)
class JointObservation:
    name: JointName
    x: float
    y: float
    confidence: float


@dataclass(frozen=True)
class HandObservation:
    """One frame of detector output: overall hand confidence + detected joints."""
    confidence: float
    joints: Dict[JointName, JointObservation] = field(default_factory=dict)

    def joint(self, name: JointName) -> Optional[JointObservation]:
        return self.joints.get(name)

    @classmethod
    def from_points(
        cls,
        confidence: float,
        points: Iterable[Optional[Tuple[float, float, float]]],
    ) -> "HandObservation":
        """
        points: (x, y, confidence) per joint in JOINT_ORDER; None marks an
        undetected joint.
        """
        joints = {}
        for name, p in zip(JOINT_ORDER, points):
            if p is None:
                continue
            x, y, c = p
            joints[name] = JointObservation(name, float(x), float(y), float(c))
        return cls(confidence=float(confidence), joints=joints)


@dataclass(frozen=True)
class ClassificationResult:
    label: str
    probability: float


@dataclass(frozen=True)
class RecognitionEvent:
    label: str
    confidence: float
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class LessonCompleted:
    target: str
    timestamp: float = field(default_factory=time.monotonic)
