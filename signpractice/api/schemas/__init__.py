from .profile import LabelsOut, ProfileOut
from .recognition import CompletedOut, FrameIn, LandmarksIn, RecognitionOut
