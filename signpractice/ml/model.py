import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol

import numpy as np
import onnxruntime as ort
import yaml
from einops import rearrange

from signpractice.config import ASSET_DIR
from signpractice.ml.errors import ClassifierUnavailable
from signpractice.ml.types import FEATURE_SHAPE, ClassificationResult, FeatureVector

logger = logging.getLogger(__name__)

ASL_LABELS = [
    "A", "B", "C", "D", "E", "F", "G", "H", "I", "J",
    "K", "L", "M", "N", "O", "P", "Q", "R", "S", "T",
    "U", "V", "W", "X", "Y", "Z", "SPACE", "NOTHING",
]


class Classifier(Protocol):
    labels: List[str]

    def predict(self, features: FeatureVector) -> Dict[str, float]:
        ...


def top_result(probabilities: Mapping[str, float]) -> Optional[ClassificationResult]:
    """Highest-probability label; on equal probability the earlier label wins."""
    best = None
    for label, prob in probabilities.items():
        if best is None or prob > best.probability:
            best = ClassificationResult(label=label, probability=float(prob))
    return best


def load_labels(path: Path) -> List[str]:
    if not path.exists():
        raise FileNotFoundError(f"labels file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


class OnnxClassifier:
    """Hand pose classifier: (1, 3, 21) feature tensor -> label probabilities."""

    def __init__(self, asset_dir: Optional[str] = None):
        self.asset_dir = Path(asset_dir) if asset_dir else ASSET_DIR

        self.config = self._load_config()
        self.labels = load_labels(self.asset_dir / self.config["model"].get("labels", "labels.txt"))
        self.outputs_probabilities = bool(self.config["model"].get("outputs_probabilities", False))

        self.session = self._load_model()
        self.input_name = self.session.get_inputs()[0].name
        self.output_name = self.session.get_outputs()[0].name

        self._warmup()

    def _load_config(self) -> dict:
        config_path = self.asset_dir / "model.yml"
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)

    def _load_model(self):
        model_path = self.asset_dir / self.config["model"]["weights"]
        if not model_path.exists():
            raise FileNotFoundError(f"classifier weights not found: {model_path}")

        providers = ["CPUExecutionProvider"]
        if self.config.get("device") == "cuda":
            providers = ["CUDAExecutionProvider", "CPUExecutionProvider"]

        return ort.InferenceSession(str(model_path), providers=providers)

    def _warmup(self):
        dummy = np.zeros((1, *FEATURE_SHAPE), dtype=np.float32)
        self.session.run([self.output_name], {self.input_name: dummy})

    @staticmethod
    def _softmax(x: np.ndarray) -> np.ndarray:
        x = x - np.max(x, axis=1, keepdims=True)
        exp = np.exp(x)
        return exp / np.sum(exp, axis=1, keepdims=True)

    def predict(self, features: FeatureVector) -> Dict[str, float]:
        batch = rearrange(np.asarray(features, dtype=np.float32), "c j -> 1 c j")

        try:
            scores = self.session.run([self.output_name], {self.input_name: batch})[0]
        except Exception as e:
            raise ClassifierUnavailable(f"inference failed: {e}") from e

        scores = np.asarray(scores, dtype=np.float32).reshape(1, -1)
        probs = scores if self.outputs_probabilities else self._softmax(scores)
        probs = np.squeeze(probs, axis=0)

        if probs.shape[0] != len(self.labels):
            raise ClassifierUnavailable(
                f"model returned {probs.shape[0]} scores for {len(self.labels)} labels"
            )

        return {label: float(p) for label, p in zip(self.labels, probs)}


def load_classifier(asset_dir: Optional[str] = None) -> OnnxClassifier:
    try:
        return OnnxClassifier(asset_dir)
    except Exception as e:
        raise ClassifierUnavailable(f"could not load classifier from {asset_dir or ASSET_DIR}: {e}") from e
