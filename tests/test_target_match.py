import unittest

from signpractice.config import TargetMatchConfig
from signpractice.ml.types import LessonCompleted, RecognitionEvent
from signpractice.practice.target_match import PracticeState, TargetMatcher


def event(label, confidence=0.9):
    return RecognitionEvent(label=label, confidence=confidence, timestamp=0.0)


class TestTargetMatcher(unittest.TestCase):
    def setUp(self):
        self.matcher = TargetMatcher("A", TargetMatchConfig(required_confidence=0.85, required_consecutive=3))

    def feed(self, *events):
        return [self.matcher.observe(e) for e in events]

    def test_three_correct_in_a_row_completes(self):
        out = self.feed(event("A"), event("A"), event("A"))

        self.assertEqual(out[:2], [None, None])
        self.assertIsInstance(out[2], LessonCompleted)
        self.assertEqual(out[2].target, "A")
        self.assertIs(self.matcher.state, PracticeState.COMPLETED)

    def test_wrong_label_resets(self):
        self.feed(event("A"), event("B"), event("A"))
        self.assertIs(self.matcher.state, PracticeState.PRACTICING)
        self.assertEqual(self.matcher.consecutive_correct, 1)

    def test_low_confidence_resets(self):
        self.feed(event("A"), event("A"))
        self.assertEqual(self.matcher.consecutive_correct, 2)
        self.feed(event("A", 0.8))
        self.assertEqual(self.matcher.consecutive_correct, 0)

    def test_threshold_is_inclusive(self):
        self.feed(*[event("A", 0.85)] * 3)
        self.assertTrue(self.matcher.completed)

    def test_completion_signalled_once(self):
        out = self.feed(*[event("A")] * 6)
        self.assertEqual(sum(isinstance(o, LessonCompleted) for o in out), 1)
        # terminal: misses do not bring it back
        self.feed(event("B"))
        self.assertTrue(self.matcher.completed)

    def test_progress(self):
        self.assertEqual(self.matcher.progress, 0.0)
        self.feed(event("A"))
        self.assertAlmostEqual(self.matcher.progress, 1 / 3)
        self.matcher.reset()
        self.assertEqual(self.matcher.progress, 0.0)
        self.assertIs(self.matcher.state, PracticeState.PRACTICING)


if __name__ == '__main__':
    unittest.main()
