"""
Frame Batching Module

Runs the sample + threshold pipeline over every captured video frame,
a fixed-size batch at a time, so long videos never flood the worker
pool and the caller gets progress between batches.
"""

import logging
import threading
import time
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import BATCH_SIZE, ProcessingParameters
from .errors import ProcessingCancelled
from .grid import Grid
from .thresholder import pixels_to_grid

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class SourceFrame:
    """Raw pixels captured from a video at one timestamp."""
    pixels: np.ndarray  # H x W x 4 RGBA
    timestamp: float  # seconds
    frame_index: int


@dataclass
class Frame:
    """One processed checkbox frame of a video."""
    grid: Grid
    timestamp: float
    frame_index: int


def frame_timestamps(duration: float, fps: int) -> List[float]:
    """
    Timestamps (seconds) of the frames to capture from a clip.

    total_frames = floor(duration * fps), one every 1000 / fps ms.
    """
    frame_interval = 1000 / fps
    total_frames = int(np.floor(duration * fps))
    return [i * frame_interval / 1000 for i in range(total_frames)]


def _yield_to_scheduler():
    time.sleep(0)


class FrameBatcher:
    """
    Process source frames in sequential batches.

    Frames inside one batch run concurrently on a thread pool; the next
    batch is not submitted until the previous one has fully completed
    and control has been yielded once.
    """

    def __init__(self,
                 batch_size: int = BATCH_SIZE,
                 max_workers: Optional[int] = None,
                 yield_control: Callable[[], None] = _yield_to_scheduler):
        """
        Args:
            batch_size: Frames submitted per batch
            max_workers: Pool size (defaults to batch_size)
            yield_control: Called between batches to let other work run
        """
        if batch_size < 1:
            raise ValueError(f"Batch size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self.max_workers = max_workers or batch_size
        self.yield_control = yield_control

    def _process_one(self, source: SourceFrame, params: ProcessingParameters) -> Frame:
        return Frame(
            grid=pixels_to_grid(source.pixels, params),
            timestamp=source.timestamp,
            frame_index=source.frame_index,
        )

    def process(self,
                source_frames: List[SourceFrame],
                params: ProcessingParameters,
                on_progress: Optional[ProgressCallback] = None,
                cancel_event: Optional[threading.Event] = None) -> List[Frame]:
        """
        Convert every source frame into a checkbox frame.

        Args:
            source_frames: Captured frames (any order)
            params: Processing parameters applied to each frame
            on_progress: Called with (processed, total) after each batch
            cancel_event: Checked between batches; a set event stops processing

        Returns:
            Frames sorted by frame_index

        Raises:
            ProcessingCancelled: cancel_event was set at a batch boundary
        """
        total = len(source_frames)
        processed: List[Frame] = []

        if total == 0:
            return processed

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for start in range(0, total, self.batch_size):
                if cancel_event is not None and cancel_event.is_set():
                    logger.info(f"Frame processing cancelled after {len(processed)}/{total} frames")
                    raise ProcessingCancelled(f"Cancelled after {len(processed)} of {total} frames")

                batch = source_frames[start:start + self.batch_size]
                futures = [pool.submit(self._process_one, frame, params) for frame in batch]
                processed.extend(future.result() for future in futures)

                logger.debug(f"Processed {len(processed)}/{total} frames")
                if on_progress:
                    on_progress(len(processed), total)

                if start + self.batch_size < total:
                    self.yield_control()

        processed.sort(key=lambda frame: frame.frame_index)
        return processed
