from signpractice.config import (
    NormalizerConfig,
    RecognizerConfig,
    TargetMatchConfig,
    ThrottleConfig,
    VoterConfig,
)
from signpractice.ml.errors import ClassifierUnavailable
from signpractice.ml.types import JOINT_ORDER, ClassificationResult, HandObservation

# open hand, origin bottom-left, y up
BASE_HAND = [
    (0.50, 0.20),
    (0.42, 0.26), (0.36, 0.33), (0.32, 0.40), (0.29, 0.46),
    (0.44, 0.42), (0.43, 0.52), (0.42, 0.58), (0.42, 0.64),
    (0.50, 0.43), (0.50, 0.54), (0.50, 0.61), (0.50, 0.67),
    (0.56, 0.42), (0.57, 0.52), (0.58, 0.58), (0.58, 0.63),
    (0.61, 0.39), (0.63, 0.47), (0.64, 0.52), (0.65, 0.56),
]


def make_hand(scale=1.0, dx=0.0, dy=0.0, confidence=0.9, joint_confidence=0.9,
              missing=(), points=BASE_HAND):
    pts = []
    for name, (x, y) in zip(JOINT_ORDER, points):
        if name in missing:
            pts.append(None)
        else:
            pts.append((x * scale + dx, y * scale + dy, joint_confidence))
    return HandObservation.from_points(confidence, pts)


def hand_message(observation: HandObservation) -> dict:
    return {
        "type": "landmarks",
        "confidence": observation.confidence,
        "joints": {
            name.value: [j.x, j.y, j.confidence]
            for name, j in observation.joints.items()
        },
    }


def results(*pairs):
    return [ClassificationResult(label, prob) for label, prob in pairs]


class FakeClassifier:
    """Plays back a script of top predictions; repeats the last one forever."""

    labels = ["A", "B", "C", "SPACE", "NOTHING"]

    def __init__(self, *script):
        self.script = list(script) or [("A", 0.95)]
        self.calls = 0

    def predict(self, features):
        step = self.script[min(self.calls, len(self.script) - 1)]
        self.calls += 1
        if step is None:
            raise ClassifierUnavailable("model not loaded")
        label, prob = step
        rest = (1.0 - prob) / (len(self.labels) - 1)
        return {l: (prob if l == label else rest) for l in self.labels}


class FakeClock:
    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, dt):
        self.now += dt
        return self.now


def quick_config(**voter) -> RecognizerConfig:
    params = dict(window=3, min_support=2, confidence_floor=0.4,
                  aggregate_confidence_floor=0.7, stability_rounds=2)
    params.update(voter)
    return RecognizerConfig(
        name="test",
        normalizer=NormalizerConfig(min_valid_joints=12),
        throttle=ThrottleConfig(interval_s=0.1),
        voter=VoterConfig(**params),
        target_match=TargetMatchConfig(required_confidence=0.85, required_consecutive=3),
    )
