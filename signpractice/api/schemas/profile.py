from typing import List

from pydantic import BaseModel

from signpractice.config import RecognizerConfig


class ProfileOut(BaseModel):
    name: str
    config: RecognizerConfig


class LabelsOut(BaseModel):
    labels: List[str]
    lesson_signs: List[str]
