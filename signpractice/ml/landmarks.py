from __future__ import annotations

import base64
import logging
import os
import time
from pathlib import Path
from typing import Iterator, Optional

import cv2
import mediapipe as mp
import numpy as np

from signpractice.ml.types import JOINT_ORDER, HandObservation, JointObservation

logger = logging.getLogger(__name__)


def decode_data_url(data_url: str) -> np.ndarray:
    """'data:image/jpeg;base64,...' -> BGR image."""
    _, encoded = data_url.split(",", 1)
    img_bytes = base64.b64decode(encoded)
    img = cv2.imdecode(np.frombuffer(img_bytes, np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("cv2.imdecode returned None")
    return img


def _landmark_confidence(lm, fallback: float) -> float:
    # hand landmarker usually leaves presence/visibility empty
    for attr in ("presence", "visibility"):
        value = getattr(lm, attr, None)
        if value:
            return float(value)
    return fallback


def observation_from_landmarks(hand_lms, score: float, flip_y: bool = True) -> HandObservation:
    """
    MediaPipe landmarks (image coords, y down) -> HandObservation.
    flip_y puts the origin at the bottom-left, the convention the classifier
    was trained on.
    """
    joints = {}
    for name, lm in zip(JOINT_ORDER, hand_lms):
        y = 1.0 - lm.y if flip_y else lm.y
        joints[name] = JointObservation(name, float(lm.x), float(y), _landmark_confidence(lm, score))
    return HandObservation(confidence=float(score), joints=joints)


class HandLandmarkDetector:
    """
    MediaPipe Tasks HandLandmarker in VIDEO mode, one hand.
    Not thread safe: create and call it from one thread.
    """

    def __init__(
        self,
        model_path: Optional[str] = None,
        min_hand_detection_confidence: float = 0.5,
        min_hand_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        flip_y: bool = True,
    ):
        self.model_path = self._resolve_model_path(model_path)
        self.flip_y = flip_y

        BaseOptions = mp.tasks.BaseOptions
        HandLandmarker = mp.tasks.vision.HandLandmarker
        HandLandmarkerOptions = mp.tasks.vision.HandLandmarkerOptions
        RunningMode = mp.tasks.vision.RunningMode

        options = HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(self.model_path)),
            running_mode=RunningMode.VIDEO,
            num_hands=1,
            min_hand_detection_confidence=min_hand_detection_confidence,
            min_hand_presence_confidence=min_hand_presence_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

        self._landmarker = HandLandmarker.create_from_options(options)
        self._last_ts_ms = 0

    def close(self) -> None:
        self._landmarker.close()

    @staticmethod
    def _resolve_model_path(model_path: Optional[str]) -> Path:
        """
        Look for hand_landmarker.task:
          1) explicit model_path
          2) env SIGNPRACTICE_HAND_TASK_PATH
          3) repo root, next to this file, current directory
        """
        if model_path:
            p = Path(model_path).expanduser().resolve()
            if not p.exists():
                raise FileNotFoundError(f"hand_landmarker.task not found: {p}")
            return p

        envp = os.getenv("SIGNPRACTICE_HAND_TASK_PATH", "").strip()
        if envp:
            p = Path(envp).expanduser().resolve()
            if not p.exists():
                raise FileNotFoundError(f"SIGNPRACTICE_HAND_TASK_PATH points to a missing file: {p}")
            return p

        here = Path(__file__).resolve()
        # .../signpractice/ml/landmarks.py -> repo root = parents[2]
        candidates = [
            here.parents[2] / "hand_landmarker.task",
            here.parent / "assets" / "hand_landmarker.task",
            Path.cwd() / "hand_landmarker.task",
        ]
        for c in candidates:
            if c.exists():
                return c.resolve()

        raise FileNotFoundError(
            "hand_landmarker.task not found.\n"
            "Put it in the repository root or set SIGNPRACTICE_HAND_TASK_PATH."
        )

    def _ensure_ts(self, ts_ms: int) -> int:
        # MediaPipe needs strictly increasing timestamps
        if ts_ms <= self._last_ts_ms:
            ts_ms = self._last_ts_ms + 1
        self._last_ts_ms = ts_ms
        return ts_ms

    def detect_bgr(self, frame_bgr: np.ndarray, ts_ms: Optional[int] = None) -> Optional[HandObservation]:
        """None when there is no hand in the frame."""
        if frame_bgr is None or frame_bgr.ndim != 3 or frame_bgr.shape[2] != 3:
            return None

        if ts_ms is None:
            ts_ms = int(time.monotonic() * 1000)
        ts_ms = self._ensure_ts(int(ts_ms))

        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        result = self._landmarker.detect_for_video(mp_image, ts_ms)

        if not result.hand_landmarks:
            return None

        score = 1.0
        if result.handedness and result.handedness[0]:
            score = float(result.handedness[0][0].score)

        return observation_from_landmarks(result.hand_landmarks[0], score, flip_y=self.flip_y)


def webcam_observations(device: int, detector: HandLandmarkDetector,
                        mirror: bool = True) -> Iterator[Optional[HandObservation]]:
    """Frame source over a local camera. Yields None for frames without a hand."""
    cap = cv2.VideoCapture(device)
    if not cap.isOpened():
        raise RuntimeError(f"cannot open camera {device}")
    try:
        while True:
            ok, frame = cap.read()
            if not ok:
                logger.warning("camera %s returned no frame, stopping", device)
                break
            if mirror:
                frame = cv2.flip(frame, 1)
            yield detector.detect_bgr(frame)
    finally:
        cap.release()
