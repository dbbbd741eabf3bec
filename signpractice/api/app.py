from typing import Callable, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signpractice import config as settings
from signpractice.config import RecognizerConfig, load_profiles
from signpractice.ml.landmarks import HandLandmarkDetector
from signpractice.ml.model import ASL_LABELS, Classifier, load_classifier
from .routes import labels, profiles
from .ws import router as ws_router


def create_app(
    classifier: Optional[Classifier] = None,
    profiles_by_name: Optional[Dict[str, RecognizerConfig]] = None,
    default_profile: Optional[str] = None,
    detector_factory: Optional[Callable] = None,
) -> FastAPI:
    app = FastAPI(title="Sign Practice API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if classifier is None:
        classifier = load_classifier(settings.MODEL_DIR or None)

    app.state.classifier = classifier
    app.state.labels = getattr(classifier, "labels", None) or ASL_LABELS
    app.state.profiles = profiles_by_name or load_profiles()
    app.state.default_profile = default_profile or settings.PROFILE
    app.state.detector_factory = detector_factory or HandLandmarkDetector

    if app.state.default_profile not in app.state.profiles:
        raise KeyError(f"Unknown default profile '{app.state.default_profile}'")

    app.include_router(labels.router)
    app.include_router(profiles.router)
    app.include_router(ws_router)
    return app
