import threading
import unittest

from signpractice.config import ThrottleConfig
from signpractice.ml.recognizer import FrameOutcome, RecognizerSession
from signpractice.ml.types import JointName, LessonCompleted, RecognitionEvent

from helpers import FakeClassifier, FakeClock, make_hand, quick_config


class TestRecognizerSession(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.classifier = FakeClassifier(("A", 0.95))
        self.session = RecognizerSession(quick_config(), self.classifier, clock=self.clock)
        self.session.start()

    def step(self, observation=None, dt=0.25):
        self.clock.advance(dt)
        return self.session.process(make_hand() if observation is None else observation)

    def test_not_started(self):
        session = RecognizerSession(quick_config(), self.classifier, clock=self.clock)
        self.assertEqual(session.process(make_hand()), FrameOutcome.STOPPED)
        self.assertEqual(self.classifier.calls, 0)

    def test_recognition_after_support_and_stability(self):
        outcomes = [self.step() for _ in range(4)]
        self.assertEqual(outcomes, [
            FrameOutcome.PENDING,
            FrameOutcome.PENDING,
            FrameOutcome.RECOGNIZED,
            FrameOutcome.RECOGNIZED,
        ])

        events = self.session.events.drain()
        self.assertEqual([type(e) for e in events], [RecognitionEvent, RecognitionEvent])
        self.assertEqual(events[0].label, "A")
        self.assertAlmostEqual(events[0].confidence, 0.95)
        self.assertEqual(events[0].timestamp, 0.75)

    def test_gate_failures_are_outcomes(self):
        self.assertEqual(self.session.process(None), FrameOutcome.NO_HAND)
        self.assertEqual(self.session.process(make_hand(confidence=0.1)), FrameOutcome.INSUFFICIENT_GEOMETRY)
        self.assertEqual(
            self.session.process(make_hand(missing={JointName.WRIST})),
            FrameOutcome.INSUFFICIENT_GEOMETRY,
        )
        self.assertEqual(self.classifier.calls, 0)

    def test_throttle(self):
        # first classification only one interval after start
        self.assertEqual(self.step(dt=0.05), FrameOutcome.THROTTLED)
        self.assertEqual(self.step(dt=0.0625), FrameOutcome.PENDING)
        self.assertEqual(self.step(dt=0.0625), FrameOutcome.THROTTLED)
        self.assertEqual(self.classifier.calls, 1)
        self.assertEqual(self.session.stats["throttled"], 2)

    def test_throttle_measured_from_evaluation_without_event(self):
        self.assertEqual(self.step(), FrameOutcome.PENDING)
        self.assertEqual(self.step(dt=0.0625), FrameOutcome.THROTTLED)

    def test_classifier_failure_is_not_fatal(self):
        classifier = FakeClassifier(None, ("A", 0.95))
        session = RecognizerSession(quick_config(), classifier, clock=self.clock)
        session.start()

        self.clock.advance(0.25)
        self.assertEqual(session.process(make_hand()), FrameOutcome.CLASSIFIER_UNAVAILABLE)
        # the failed attempt still counts for the throttle
        self.clock.advance(0.0625)
        self.assertEqual(session.process(make_hand()), FrameOutcome.THROTTLED)
        self.clock.advance(0.0625)
        self.assertEqual(session.process(make_hand()), FrameOutcome.PENDING)

    def test_low_confidence_resets_stability(self):
        classifier = FakeClassifier(("A", 0.95), ("A", 0.95), ("A", 0.2), ("A", 0.95), ("A", 0.95))
        session = RecognizerSession(quick_config(), classifier, clock=self.clock)
        session.start()

        outcomes = []
        for _ in range(5):
            self.clock.advance(0.25)
            outcomes.append(session.process(make_hand()))

        self.assertEqual(outcomes, [
            FrameOutcome.PENDING,
            FrameOutcome.PENDING,
            FrameOutcome.LOW_CONFIDENCE,
            FrameOutcome.PENDING,
            FrameOutcome.RECOGNIZED,
        ])

    def test_gate_reject_policy(self):
        config = quick_config().model_copy(update={"reset_on_gate_reject": True})
        session = RecognizerSession(config, self.classifier, clock=self.clock)
        session.start()
        for _ in range(2):
            self.clock.advance(0.25)
            session.process(make_hand())
        self.assertEqual(session.voter.stability.count, 1)

        session.process(None)
        self.assertEqual(session.voter.stability.count, 0)

        # default policy leaves it alone
        for _ in range(2):
            self.step()
        self.session.process(None)
        self.assertEqual(self.session.voter.stability.count, 1)

    def test_lesson_completion(self):
        session = RecognizerSession(quick_config(), self.classifier, target="A", clock=self.clock)
        session.start()
        for _ in range(8):
            self.clock.advance(0.25)
            session.process(make_hand())

        events = session.events.drain()
        kinds = [type(e).__name__ for e in events]
        self.assertEqual(kinds[:4], ["RecognitionEvent"] * 3 + ["LessonCompleted"])
        self.assertEqual(sum(isinstance(e, LessonCompleted) for e in events), 1)
        self.assertTrue(session.matcher.completed)

    def test_other_sign_does_not_complete(self):
        classifier = FakeClassifier(("B", 0.95))
        session = RecognizerSession(quick_config(), classifier, target="A", clock=self.clock)
        session.start()
        for _ in range(8):
            self.clock.advance(0.25)
            session.process(make_hand())

        self.assertFalse(session.matcher.completed)
        self.assertFalse(any(isinstance(e, LessonCompleted) for e in session.events.drain()))

    def test_stop_and_restart(self):
        self.step()
        self.step()
        self.session.stop()
        self.assertEqual(self.step(), FrameOutcome.STOPPED)
        self.assertFalse(self.session.running)

        # restart begins from an empty history
        self.session.start()
        self.assertEqual(len(self.session.voter.history), 0)
        self.assertEqual(self.step(), FrameOutcome.PENDING)
        self.assertEqual(self.session.stats["pending"], 1)

    def test_concurrent_frames_keep_state_consistent(self):
        config = quick_config(window=5, min_support=3)
        config = config.model_copy(update={"throttle": ThrottleConfig(interval_s=0.0)})
        classifier = FakeClassifier(("A", 0.95))
        session = RecognizerSession(config, classifier)
        session.start()

        def worker():
            for _ in range(50):
                session.process(make_hand())

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(sum(session.stats.values()), 200)
        self.assertEqual(classifier.calls, 200)
        self.assertEqual(len(session.voter.history), 5)
        # stability counted every round exactly once
        self.assertEqual(session.voter.stability.count, 198)


if __name__ == '__main__':
    unittest.main()
