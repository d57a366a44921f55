import logging
import mimetypes
import os
import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError
from typing import Callable, List, Optional

from .errors import MediaError
from .frames import SourceFrame, frame_timestamps

logger = logging.getLogger(__name__)

# Not every platform's mime table knows these
mimetypes.add_type("video/webm", ".webm")
mimetypes.add_type("video/x-matroska", ".mkv")
mimetypes.add_type("image/webp", ".webp")

IMAGE = "image"
VIDEO = "video"


def media_kind(path: str) -> Optional[str]:
    """Return IMAGE or VIDEO from the file's declared media type, else None."""
    mime_type, _ = mimetypes.guess_type(path)
    if not mime_type:
        return None
    major = mime_type.split("/", 1)[0]
    if major in (IMAGE, VIDEO):
        return major
    return None


def load_image(image_path: str) -> Image.Image:
    """
    Open a still image as RGBA.

    Raises:
        MediaError: The file is missing or not a readable image.
    """
    if not os.path.exists(image_path):
        raise MediaError(f"Image file not found: {image_path}")
    try:
        with Image.open(image_path) as img:
            # Animated formats contribute their first frame only
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        raise MediaError(f"Could not read image {image_path}: {e}") from e


class VideoProcessor:
    def __init__(self, video_path):
        if not os.path.exists(video_path):
            raise MediaError(f"Video file not found: {video_path}")

        self.video_path = video_path
        self.cap = cv2.VideoCapture(video_path)

        if not self.cap.isOpened():
            raise MediaError(f"Could not open video file: {video_path}")

        self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.fps = self.cap.get(cv2.CAP_PROP_FPS)
        self.frame_count = int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT))
        self.duration = self.frame_count / self.fps if self.fps > 0 else 0

    def get_metadata(self):
        return {
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "frame_count": self.frame_count,
            "duration": self.duration,
        }

    def capture_at(self, timestamp: float) -> Optional[np.ndarray]:
        """
        Seek to a timestamp (seconds) and grab that frame as RGBA.

        The capture shares a single decode buffer, so the seek has to land
        before the pixels are read.
        """
        self.cap.set(cv2.CAP_PROP_POS_MSEC, timestamp * 1000)
        ret, frame = self.cap.read()
        if not ret:
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)

    def blank_frame(self) -> np.ndarray:
        """An opaque white RGBA frame the size of the video."""
        return np.full((max(1, self.height), max(1, self.width), 4), 255, dtype=np.uint8)

    def extract_frames(self, fps: int,
                       on_progress: Optional[Callable[[int, int], None]] = None) -> List[SourceFrame]:
        """
        Capture frames at a fixed cadence.

        Args:
            fps: Target frames per second; floor(duration * fps) frames are taken
            on_progress: Called with (captured, total) after each seek

        Returns:
            List of SourceFrame in frame_index order
        """
        timestamps = frame_timestamps(self.duration, fps)
        total = len(timestamps)
        frames = []
        last_pixels = None

        for frame_index, timestamp in enumerate(timestamps):
            pixels = self.capture_at(timestamp)
            if pixels is None:
                # Undecodable seek: hold the previous frame, or white before the first
                logger.debug(f"No frame decoded at {timestamp:.3f}s in {self.video_path}")
                pixels = last_pixels if last_pixels is not None else self.blank_frame()
            last_pixels = pixels
            frames.append(SourceFrame(pixels=pixels, timestamp=timestamp,
                                      frame_index=frame_index))
            if on_progress:
                on_progress(frame_index + 1, total)

        logger.info(f"Captured {len(frames)} frames at {fps} fps from {os.path.basename(self.video_path)}")
        return frames

    def close(self):
        self.cap.release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __del__(self):
        if hasattr(self, 'cap') and self.cap.isOpened():
            self.cap.release()
