import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

load_dotenv()

ASSET_DIR = Path(__file__).resolve().parent / "ml" / "assets"
DEFAULT_PROFILES_PATH = ASSET_DIR / "profiles.yml"

PROFILE = os.getenv("SIGNPRACTICE_PROFILE", "strict")
CONFIG_PATH = os.getenv("SIGNPRACTICE_CONFIG", "")
MODEL_DIR = os.getenv("SIGNPRACTICE_MODEL_DIR", "")


class NormalizerConfig(BaseModel):
    hand_confidence_floor: float = Field(0.3, ge=0.0, le=1.0)
    joint_confidence_floor: float = Field(0.2, ge=0.0, le=1.0)
    min_valid_joints: int = Field(12, ge=3, le=21)
    scale_epsilon: float = Field(0.1, gt=0.0)
    plane_correction: bool = False
    # sine of the index-wrist-little angle for a flat, camera-facing palm
    nominal_palm_spread: float = Field(0.35, gt=0.0, le=1.0)
    min_plane_correction: float = Field(0.5, gt=0.0, le=1.0)
    # off in every bundled profile: the bundled classifier was trained on unrotated features
    align_rotation: bool = False


class ThrottleConfig(BaseModel):
    interval_s: float = Field(0.1, ge=0.0)


class VoterConfig(BaseModel):
    window: int = Field(3, ge=1)
    min_support: int = Field(2, ge=1)
    confidence_floor: float = Field(0.4, ge=0.0, le=1.0)
    aggregate_confidence_floor: float = Field(0.7, ge=0.0, le=1.0)
    stability_rounds: int = Field(2, ge=1)

    @model_validator(mode="after")
    def _support_fits_window(self):
        if self.min_support > self.window:
            raise ValueError(
                f"min_support={self.min_support} can never be reached with window={self.window}"
            )
        return self


class TargetMatchConfig(BaseModel):
    required_confidence: float = Field(0.85, ge=0.0, le=1.0)
    required_consecutive: int = Field(3, ge=1)


class RecognizerConfig(BaseModel):
    name: str = "custom"
    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    throttle: ThrottleConfig = Field(default_factory=ThrottleConfig)
    voter: VoterConfig = Field(default_factory=VoterConfig)
    target_match: TargetMatchConfig = Field(default_factory=TargetMatchConfig)
    # A frame rejected by the gate also resets the stability counter.
    reset_on_gate_reject: bool = False


def load_profiles(path: Optional[Path] = None) -> Dict[str, RecognizerConfig]:
    path = Path(path or CONFIG_PATH or DEFAULT_PROFILES_PATH)
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    profiles = raw.get("profiles")
    if not profiles:
        raise ValueError(f"No profiles defined in {path}")

    return {
        name: RecognizerConfig(name=name, **(body or {}))
        for name, body in profiles.items()
    }


def load_profile(name: Optional[str] = None, path: Optional[Path] = None) -> RecognizerConfig:
    name = name or PROFILE
    profiles = load_profiles(path)
    if name not in profiles:
        raise KeyError(f"Unknown profile '{name}', available: {sorted(profiles)}")
    return profiles[name]
