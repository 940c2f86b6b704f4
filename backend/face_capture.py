"""
Face capture collaborator used during enrollment.

Collects a fixed number of camera frames and bundles them into the opaque
face template stored on the roster entry.
"""
import base64
import binascii
import json
import time
from typing import List, Optional

import cv2
import numpy as np

from config import REQUIRED_CAPTURES


class FaceCaptureError(ValueError):
    """Raised when a captured frame cannot be decoded."""


def decode_image(image_data: str) -> np.ndarray:
    """
    Decode a base64 frame (optionally a data URL) into a BGR image.

    Raises:
        FaceCaptureError: if the data is not base64 or not an image.
    """
    encoded = image_data.split(',')[1] if ',' in image_data else image_data
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FaceCaptureError(f"Invalid base64 image data: {e}") from e

    nparr = np.frombuffer(raw, np.uint8)
    img = cv2.imdecode(nparr, cv2.IMREAD_COLOR) if nparr.size else None
    if img is None:
        raise FaceCaptureError("Invalid image format")
    return img


class FaceCapture:
    """
    Accumulates enrollment samples.

    ``add_sample`` returns the template JSON once ``required_captures``
    frames have been accepted, and None before that.
    """

    def __init__(self, required_captures: int = REQUIRED_CAPTURES):
        self.required_captures = required_captures
        self.images: List[str] = []
        self.cancelled = False

    @property
    def capture_count(self) -> int:
        return len(self.images)

    def add_sample(self, image_data: str) -> Optional[str]:
        if self.cancelled:
            raise FaceCaptureError("Capture was cancelled")
        decode_image(image_data)
        self.images.append(image_data)

        if self.capture_count < self.required_captures:
            return None
        return json.dumps({
            "images": self.images,
            "timestamp": int(time.time() * 1000),
            "captureCount": self.required_captures,
        })

    def reset(self) -> None:
        self.images = []
        self.cancelled = False

    def cancel(self) -> None:
        self.images = []
        self.cancelled = True
