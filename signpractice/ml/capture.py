import logging
import threading
from typing import Iterable, Optional

from signpractice.ml.recognizer import RecognizerSession
from signpractice.ml.types import HandObservation

logger = logging.getLogger(__name__)

STOP_TIMEOUT_S = 5.0


class CaptureWorker:
    """
    Feeds observations from a frame source into a recognizer session on one
    background thread, strictly one frame after another.
    stop() returns immediately. start() waits for a run that is still
    stopping, then begins a fresh one.
    """

    def __init__(self, source: Iterable[Optional[HandObservation]], session: RecognizerSession):
        self.source = source
        self.session = session
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            if not self._stop.is_set():
                return
            # previous run is still winding down; its teardown must not hit the new run
            self._thread.join(STOP_TIMEOUT_S)
            if self._thread.is_alive():
                raise RuntimeError("previous capture run did not stop")
        self._stop.clear()
        self.session.start()
        self._thread = threading.Thread(target=self._run, name="capture-worker", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        self.session.stop()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        frames = 0
        try:
            for observation in self.source:
                if self._stop.is_set():
                    break
                self.session.process(observation)
                frames += 1
        except Exception:
            logger.exception("frame source failed after %d frames", frames)
        finally:
            self.session.stop()
            # source is done, nothing more will be published
            self.session.events.close()
            logger.info("capture worker finished, frames=%d", frames)
