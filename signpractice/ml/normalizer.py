from __future__ import annotations

import logging
import math
from typing import Tuple

import numpy as np

from signpractice.config import NormalizerConfig
from signpractice.ml.errors import InsufficientGeometry
from signpractice.ml.types import (
    FEATURE_SHAPE,
    JOINT_ORDER,
    FeatureVector,
    HandObservation,
    JointName,
    JointObservation,
)

logger = logging.getLogger(__name__)

REFERENCE_JOINTS = (JointName.WRIST, JointName.INDEX_MCP, JointName.LITTLE_MCP)


def hand_scale(index_mcp: JointObservation, little_mcp: JointObservation, eps: float) -> float:
    """Palm width (index MCP to little MCP), floored so we never divide by ~0."""
    width = math.hypot(index_mcp.x - little_mcp.x, index_mcp.y - little_mcp.y)
    return max(width, eps)


def hand_center(index_mcp: JointObservation, little_mcp: JointObservation) -> Tuple[float, float]:
    return (index_mcp.x + little_mcp.x) / 2.0, (index_mcp.y + little_mcp.y) / 2.0


def palm_spread(wrist: JointObservation, index_mcp: JointObservation,
                little_mcp: JointObservation) -> float:
    """
    |sin| of the angle between (index MCP - wrist) and (little MCP - wrist),
    from the z component of their cross product. A palm tilted away from the
    camera collapses towards 0.
    """
    ax, ay = index_mcp.x - wrist.x, index_mcp.y - wrist.y
    bx, by = little_mcp.x - wrist.x, little_mcp.y - wrist.y
    cross_z = ax * by - ay * bx
    norm = math.hypot(ax, ay) * math.hypot(bx, by)
    if norm < 1e-9:
        return 0.0
    return abs(cross_z) / norm


class LandmarkNormalizer:
    """Turns one HandObservation into the (3, 21) feature tensor the classifier expects."""

    def __init__(self, config: NormalizerConfig):
        self.config = config

    def _reference_joints(self, observation: HandObservation):
        floor = self.config.joint_confidence_floor
        refs = []
        for name in REFERENCE_JOINTS:
            joint = observation.joint(name)
            if joint is None or joint.confidence <= floor:
                raise InsufficientGeometry(
                    InsufficientGeometry.REFERENCE_JOINTS,
                    f"reference joint {name.value} not detected",
                )
            refs.append(joint)
        return refs

    def perspective_correction(self, wrist, index_mcp, little_mcp) -> float:
        cfg = self.config
        if not cfg.plane_correction:
            return 1.0
        ratio = palm_spread(wrist, index_mcp, little_mcp) / cfg.nominal_palm_spread
        return float(np.clip(ratio, cfg.min_plane_correction, 1.0))

    @staticmethod
    def _rotation(wrist: JointObservation, cx: float, cy: float) -> np.ndarray:
        # rotate so that wrist -> palm center points along +y
        vx, vy = cx - wrist.x, cy - wrist.y
        if math.hypot(vx, vy) < 1e-9:
            return np.eye(2)
        phi = math.atan2(vx, vy)
        c, s = math.cos(phi), math.sin(phi)
        return np.array([[c, -s], [s, c]])

    def normalize(self, observation: HandObservation) -> FeatureVector:
        cfg = self.config

        if observation.confidence <= cfg.hand_confidence_floor:
            raise InsufficientGeometry(
                InsufficientGeometry.HAND_CONFIDENCE,
                f"low hand confidence {observation.confidence:.2f}",
            )

        wrist, index_mcp, little_mcp = self._reference_joints(observation)

        scale = hand_scale(index_mcp, little_mcp, cfg.scale_epsilon)
        cx, cy = hand_center(index_mcp, little_mcp)
        correction = self.perspective_correction(wrist, index_mcp, little_mcp)
        rotation = self._rotation(wrist, cx, cy) if cfg.align_rotation else None

        features = np.zeros(FEATURE_SHAPE, dtype=np.float32)
        valid = 0

        for idx, name in enumerate(JOINT_ORDER):
            joint = observation.joint(name)
            if joint is None or joint.confidence <= cfg.joint_confidence_floor:
                continue
            valid += 1

            xy = np.array([joint.x - cx, joint.y - cy]) / scale
            if rotation is not None:
                xy = rotation @ xy
            xy *= correction

            features[0, idx] = xy[0]
            features[1, idx] = xy[1]
            features[2, idx] = joint.confidence

        if valid < cfg.min_valid_joints:
            raise InsufficientGeometry(
                InsufficientGeometry.VALID_JOINTS,
                f"only {valid} valid joints, need {cfg.min_valid_joints}",
                valid_joints=valid,
            )

        return features
