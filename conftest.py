"""
Root conftest - shared pytest fixtures.
Ensures the checkboxsketch package is importable when running pytest from the repo root.
"""
import sys
from pathlib import Path

import cv2
import numpy as np
import pytest
from PIL import Image

_root = Path(__file__).resolve().parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))


def solid_image(color, size=(2, 2), mode="RGB"):
    return Image.new(mode, size, color)


@pytest.fixture
def white_image():
    return solid_image((255, 255, 255))


@pytest.fixture
def black_image():
    return solid_image((0, 0, 0))


@pytest.fixture
def gradient_pixels():
    """4x4 RGBA buffer whose brightness rises left to right."""
    row = np.array([0, 85, 170, 255], dtype=np.uint8)
    gray = np.tile(row, (4, 1))
    rgba = np.stack([gray, gray, gray, np.full_like(gray, 255)], axis=-1)
    return rgba


@pytest.fixture
def video_file(tmp_path):
    """
    One-second 10 fps MJPG clip alternating black and white frames.
    Skips when the local OpenCV build cannot encode it.
    """
    path = str(tmp_path / "clip.avi")
    writer = cv2.VideoWriter(path, cv2.VideoWriter_fourcc(*"MJPG"), 10, (16, 8))
    if not writer.isOpened():
        pytest.skip("OpenCV cannot write MJPG video here")
    for i in range(10):
        value = 0 if i % 2 == 0 else 255
        writer.write(np.full((8, 16, 3), value, dtype=np.uint8))
    writer.release()

    cap = cv2.VideoCapture(path)
    readable = cap.isOpened() and cap.get(cv2.CAP_PROP_FRAME_COUNT) > 0
    cap.release()
    if not readable:
        pytest.skip("OpenCV cannot read back MJPG video here")
    return path
