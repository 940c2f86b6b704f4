"""
Face recognition collaborators.

The kiosk only depends on ``FaceRecognizer``; the demo ships a mock that
flips weighted coins, so a real model can be dropped in without touching
the sync code.
"""
import random
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from config import DETECTION_RATE, RECOGNITION_RATE
from schemas import Employee


class FaceRecognizer(ABC):
    """Interface for face detection and identification."""

    @abstractmethod
    def detect(self, image: np.ndarray) -> bool:
        """Return True if the frame contains a usable face."""

    @abstractmethod
    def recognize(self, image: np.ndarray, candidates: Sequence[Employee]) -> Optional[Employee]:
        """Return the matching candidate, or None."""


class MockFaceRecognizer(FaceRecognizer):
    """
    Randomized stand-in for a real recognizer.

    Args:
        rng: Random source; pass a seeded ``random.Random`` for repeatable runs
        detection_rate: Probability that ``detect`` finds a face
        recognition_rate: Probability that ``recognize`` returns a match
    """

    def __init__(self, rng: Optional[random.Random] = None,
                 detection_rate: float = DETECTION_RATE,
                 recognition_rate: float = RECOGNITION_RATE):
        self.rng = rng or random.Random()
        self.detection_rate = detection_rate
        self.recognition_rate = recognition_rate

    def detect(self, image: np.ndarray) -> bool:
        return self.rng.random() < self.detection_rate

    def recognize(self, image: np.ndarray, candidates: Sequence[Employee]) -> Optional[Employee]:
        if not candidates:
            return None
        if self.rng.random() < self.recognition_rate:
            return self.rng.choice(list(candidates))
        return None
