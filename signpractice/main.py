import argparse
import logging
import os

import uvicorn

from signpractice import config as settings
from signpractice.config import load_profile
from signpractice.ml.capture import CaptureWorker
from signpractice.ml.landmarks import HandLandmarkDetector, webcam_observations
from signpractice.ml.model import load_classifier
from signpractice.ml.recognizer import RecognizerSession
from signpractice.ml.types import LessonCompleted

logger = logging.getLogger("signpractice")


def serve(args):
    from signpractice.api.app import create_app

    uvicorn.run(create_app(default_profile=args.profile), host=args.host, port=args.port)


def webcam(args):
    """Practice one sign against the local camera, printing events as they come."""
    session = RecognizerSession(
        load_profile(args.profile),
        load_classifier(settings.MODEL_DIR or None),
        target=args.target,
    )
    detector = HandLandmarkDetector()
    worker = CaptureWorker(webcam_observations(args.device, detector), session)
    worker.start()
    try:
        for event in session.events:
            if isinstance(event, LessonCompleted):
                print(f"Great job! '{event.target}' completed.")
                break
            print(f"{event.label} {event.confidence:.0%}")
    except KeyboardInterrupt:
        print("Exit")
    finally:
        worker.stop()
        session.events.close()
        worker.join(timeout=2.0)
        detector.close()


def main():
    parser = argparse.ArgumentParser(prog="signpractice")
    parser.add_argument("--profile", default=settings.PROFILE)
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="serve the recognizer over HTTP/WebSocket")
    p_serve.add_argument("--host", default=os.getenv("SIGNPRACTICE_HOST", "0.0.0.0"))
    p_serve.add_argument("--port", type=int, default=int(os.getenv("SIGNPRACTICE_PORT", "8000")))
    p_serve.set_defaults(func=serve)

    p_cam = sub.add_parser("webcam", help="practice a sign with the local camera")
    p_cam.add_argument("target", nargs="?", default=None)
    p_cam.add_argument("--device", type=int, default=0)
    p_cam.set_defaults(func=webcam)

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    args.func(args)


if __name__ == "__main__":
    main()
