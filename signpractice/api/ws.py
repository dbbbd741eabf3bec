from fastapi import APIRouter, WebSocket, WebSocketDisconnect
import asyncio
import binascii
import json
import time
import os
import logging
import concurrent.futures
from typing import Optional, Union

from pydantic import ValidationError

from signpractice.api.schemas import CompletedOut, FrameIn, LandmarksIn, RecognitionOut
from signpractice.ml.landmarks import decode_data_url
from signpractice.ml.recognizer import FrameOutcome, RecognizerSession
from signpractice.ml.types import LessonCompleted

router = APIRouter()

DEBUG_WS = os.getenv("SIGNPRACTICE_WS_DEBUG", "0") == "1"

logger = logging.getLogger("recognize_ws")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

Incoming = Union[LandmarksIn, FrameIn]


def parse_message(msg) -> Optional[Incoming]:
    if not isinstance(msg, dict):
        return None
    kind = msg.get("type")
    try:
        if kind == "landmarks":
            return LandmarksIn(**msg)
        if kind == "frame":
            return FrameIn(**msg)
    except ValidationError as e:
        logger.debug("bad %s message: %s", kind, e)
    return None


def event_payload(event, progress: Optional[float] = None) -> dict:
    if isinstance(event, LessonCompleted):
        return CompletedOut(target=event.target).model_dump()
    return RecognitionOut(label=event.label, confidence=event.confidence, progress=progress).model_dump()


def drain_payloads(session: RecognizerSession) -> list:
    """Pending events as JSON payloads. Call on the thread that runs the session."""
    progress = session.matcher.progress if session.matcher is not None else None
    return [event_payload(event, progress) for event in session.events.drain()]


@router.websocket("/ws/recognize")
async def recognize_ws(ws: WebSocket, target: Optional[str] = None, profile: Optional[str] = None):
    state = ws.app.state
    profile_name = profile or state.default_profile
    config = state.profiles.get(profile_name)
    if config is None:
        await ws.close(code=1008)
        return

    await ws.accept()

    alive = True

    ping_interval_s = 10.0
    last_ping = 0.0

    # one slot => always the latest frame, stale frames are dropped instead of queued
    q: asyncio.Queue = asyncio.Queue(maxsize=1)

    frames_in = 0
    frames_dropped = 0
    bad_messages = 0
    outcomes = {}
    last_debug = 0.0

    # everything that touches the session or the landmarker runs on this one thread
    loop = asyncio.get_running_loop()
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    detector = None
    detector_failed = False

    session = RecognizerSession(config, state.classifier, target=target)

    async def receiver():
        nonlocal alive, frames_in, frames_dropped, bad_messages
        try:
            while True:
                text = await ws.receive_text()
                try:
                    msg = json.loads(text)
                except ValueError:
                    bad_messages += 1
                    continue
                if isinstance(msg, dict) and msg.get("type") == "reset":
                    await loop.run_in_executor(executor, session.start)
                    continue
                parsed = parse_message(msg)
                if parsed is None:
                    bad_messages += 1
                    continue
                frames_in += 1
                if q.full():
                    frames_dropped += 1
                    q.get_nowait()
                q.put_nowait(parsed)
        except WebSocketDisconnect:
            alive = False
            raise

    async def pinger():
        nonlocal last_ping, alive
        try:
            while alive:
                now = time.monotonic()
                if (now - last_ping) > ping_interval_s:
                    last_ping = now
                    try:
                        await ws.send_json({"type": "ping"})
                    except Exception:
                        alive = False
                        break
                await asyncio.sleep(0.25)
        except asyncio.CancelledError:
            return

    recv_task = None
    ping_task = None

    try:
        await loop.run_in_executor(executor, session.start)

        recv_task = asyncio.create_task(receiver())
        ping_task = asyncio.create_task(pinger())

        while alive:
            try:
                msg = await asyncio.wait_for(q.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            if isinstance(msg, LandmarksIn):
                observation = msg.to_observation()
            else:
                if detector_failed:
                    continue
                if detector is None:
                    try:
                        detector = await loop.run_in_executor(executor, state.detector_factory)
                    except Exception as e:
                        detector_failed = True
                        logger.error("landmark detector unavailable: %s", e)
                        await ws.send_json({"type": "error", "detail": "landmark detector unavailable"})
                        continue
                try:
                    frame = decode_data_url(msg.data)
                except (ValueError, binascii.Error):
                    bad_messages += 1
                    continue
                observation = await loop.run_in_executor(executor, detector.detect_bgr, frame, msg.ts_ms)

            outcome = await loop.run_in_executor(executor, session.process, observation)
            outcomes[outcome.value] = outcomes.get(outcome.value, 0) + 1

            if outcome is FrameOutcome.RECOGNIZED:
                payloads = await loop.run_in_executor(executor, drain_payloads, session)
                for payload in payloads:
                    try:
                        await ws.send_json(payload)
                    except (WebSocketDisconnect, RuntimeError):
                        alive = False
                        break

            now = time.monotonic()
            if DEBUG_WS and (now - last_debug) > 1.0:
                last_debug = now
                logger.info(
                    f"frames_in={frames_in} dropped={frames_dropped} "
                    f"bad={bad_messages} outcomes={outcomes}"
                )

    except WebSocketDisconnect:
        pass
    finally:
        alive = False
        session.stop()
        session.events.close()

        if recv_task is not None:
            recv_task.cancel()
        if ping_task is not None:
            ping_task.cancel()
        if recv_task is not None or ping_task is not None:
            await asyncio.gather(
                *(t for t in [recv_task, ping_task] if t is not None),
                return_exceptions=True,
            )

        if detector is not None:
            await loop.run_in_executor(executor, detector.close)
        executor.shutdown(wait=False)
