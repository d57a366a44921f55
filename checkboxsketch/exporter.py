"""
Export Module

Renders checkbox grids back into rasters: a flat pixel PNG, a
checkbox-styled PNG, and a VP9/WebM video of a frame sequence.
"""

import logging
import os
import time
import cv2
import numpy as np
from PIL import Image, ImageDraw
from typing import Any, Callable, List, Optional

from .config import (CHECKBOX_PNG_FILENAME, PNG_FILENAME, VIDEO_FILENAME,
                     ExportSettings)
from .errors import ExportError
from .frames import Frame
from .grid import Grid
from .playback import Canceller, Scheduler

logger = logging.getLogger(__name__)

BLACK = 0
WHITE = 255


def raster_size(grid: Grid, export_size: int):
    """(width, height) of a grid rendered at export_size pixels per cell."""
    return grid.cols * export_size, grid.rows * export_size


def render_grid_into(buffer: np.ndarray, grid: Grid, export_size: int) -> np.ndarray:
    """
    Paint a grid into an existing grayscale buffer.

    Every cell becomes an export_size block: black when checked, white otherwise.
    """
    width, height = raster_size(grid, export_size)
    if buffer.shape[:2] != (height, width):
        raise ExportError(
            f"Buffer {buffer.shape[1]}x{buffer.shape[0]} does not fit a {width}x{height} render")

    blocks = np.repeat(np.repeat(grid.data, export_size, axis=0), export_size, axis=1)
    buffer.fill(WHITE)
    buffer[blocks] = BLACK
    return buffer


def render_grid(grid: Grid, export_size: int) -> Image.Image:
    """Render a grid as a mode 'L' image of cols*export_size x rows*export_size."""
    if export_size < 1:
        raise ValueError(f"Export size must be positive, got {export_size}")
    width, height = raster_size(grid, export_size)
    buffer = np.empty((height, width), dtype=np.uint8)
    return Image.fromarray(render_grid_into(buffer, grid, export_size))


def render_checkboxes(grid: Grid, settings: Optional[ExportSettings] = None) -> Image.Image:
    """
    Draw the grid as rows of checkbox widgets, the way it looks on screen.

    Args:
        grid: Grid to draw
        settings: Cell pitch, scale and background colour
    """
    settings = settings or ExportSettings()
    pitch = settings.checkbox_cell * settings.checkbox_scale
    margin = max(1, settings.checkbox_scale)
    box = pitch - 2 * margin

    img = Image.new("RGB", (grid.cols * pitch, grid.rows * pitch),
                    settings.checkbox_background)
    draw = ImageDraw.Draw(img)
    tick_width = max(1, box // 6)

    for row in range(grid.rows):
        for col in range(grid.cols):
            x0 = col * pitch + margin
            y0 = row * pitch + margin
            x1, y1 = x0 + box - 1, y0 + box - 1
            if grid.data[row, col]:
                draw.rectangle((x0, y0, x1, y1), fill="#1f6feb", outline="#1f6feb")
                draw.line([(x0 + box * 0.2, y0 + box * 0.55),
                           (x0 + box * 0.42, y0 + box * 0.75),
                           (x0 + box * 0.8, y0 + box * 0.28)],
                          fill="white", width=tick_width)
            else:
                draw.rectangle((x0, y0, x1, y1), fill="white", outline="#767676")

    return img


def _save(img: Image.Image, path: str) -> str:
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        img.save(path, format="PNG")
    except (OSError, ValueError) as e:
        raise ExportError(f"Could not write {path}: {e}") from e
    logger.info(f"Saved {path}")
    return path


def save_png(grid: Grid, output_dir: str, export_size: int,
             filename: str = PNG_FILENAME) -> str:
    return _save(render_grid(grid, export_size), os.path.join(output_dir, filename))


def save_checkbox_png(grid: Grid, output_dir: str,
                      settings: Optional[ExportSettings] = None,
                      filename: str = CHECKBOX_PNG_FILENAME) -> str:
    return _save(render_checkboxes(grid, settings), os.path.join(output_dir, filename))


class VideoExporter:
    """
    Real-time exporter for a frame sequence.

    Frames are rendered only when they are due on the wall clock: each tick
    compares the time since the last rendered frame with the frame interval
    and writes at most one frame. A slow tick therefore never drops a
    frame, it only delays the rest of the export.
    """

    def __init__(self,
                 frames: List[Frame],
                 fps: float,
                 output_path: str,
                 settings: Optional[ExportSettings] = None,
                 on_progress: Optional[Callable[[int, int], None]] = None,
                 on_complete: Optional[Callable[[str], None]] = None,
                 schedule: Optional[Scheduler] = None,
                 cancel: Optional[Canceller] = None,
                 clock: Callable[[], float] = time.monotonic):
        if not frames:
            raise ExportError("No frames to export")

        self.frames = frames
        self.fps = fps
        self.output_path = output_path
        self.settings = settings or ExportSettings()
        self.on_progress = on_progress
        self.on_complete = on_complete
        self._schedule = schedule
        self._cancel = cancel
        self._clock = clock

        self.frame_cursor = 0
        self.finished = False
        self.cancelled = False
        self._writer = None
        self._buffer = None
        self._last_render_ms = 0.0
        self._pending: Any = None

    @property
    def frame_interval(self) -> float:
        return 1000 / self.fps

    @property
    def total_frames(self) -> int:
        return len(self.frames)

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _open_writer(self):
        width, height = raster_size(self.frames[0].grid, self.settings.export_size)
        directory = os.path.dirname(self.output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        fourcc = cv2.VideoWriter_fourcc(*self.settings.codec)
        writer = cv2.VideoWriter(self.output_path, fourcc, self.fps, (width, height))
        if not writer.isOpened():
            raise ExportError(
                f"Could not open {self.settings.codec} video writer for {self.output_path}")

        self._writer = writer
        self._buffer = np.empty((height, width), dtype=np.uint8)

    def start(self):
        """Open the output and begin ticking (if a scheduler was supplied)."""
        self._open_writer()
        # The first tick is due immediately
        self._last_render_ms = self._now_ms() - self.frame_interval
        logger.info(f"Exporting {self.total_frames} frames to {self.output_path}")
        self._schedule_tick()

    def _schedule_tick(self):
        if self._schedule is None or self.finished:
            return
        self._pending = self._schedule(max(1, int(self.frame_interval // 4)), self._on_scheduled_tick)

    def _on_scheduled_tick(self):
        self._pending = None
        try:
            self.tick()
        except ExportError as e:
            logger.error(f"Video export failed: {e}")
            self._release()
            self.finished = True
            return
        self._schedule_tick()

    def tick(self) -> bool:
        """
        Render the next frame if it is due.

        Returns:
            True when a frame was written on this tick.
        """
        if self.finished or self._writer is None:
            return False

        now = self._now_ms()
        if now - self._last_render_ms < self.frame_interval:
            return False

        frame = self.frames[self.frame_cursor]
        render_grid_into(self._buffer, frame.grid, self.settings.export_size)
        try:
            self._writer.write(cv2.cvtColor(self._buffer, cv2.COLOR_GRAY2BGR))
        except cv2.error as e:
            raise ExportError(f"Could not encode frame {frame.frame_index}: {e}") from e

        self._last_render_ms = now
        self.frame_cursor += 1
        if self.on_progress:
            self.on_progress(self.frame_cursor, self.total_frames)

        if self.frame_cursor >= self.total_frames:
            self._finish()
        return True

    def _finish(self):
        self._release()
        self.finished = True
        logger.info(f"Video export finished: {self.output_path}")
        if self.on_complete:
            self.on_complete(self.output_path)

    def _release(self):
        if self._writer is not None:
            self._writer.release()
            self._writer = None

    def cancel(self):
        """Stop before the next tick and close the output."""
        if self._pending is not None and self._cancel is not None:
            self._cancel(self._pending)
        self._pending = None
        self.cancelled = True
        self.finished = True
        self._release()
        logger.info(f"Video export cancelled at frame {self.frame_cursor}/{self.total_frames}")

    def run(self, sleep: Callable[[float], None] = time.sleep) -> str:
        """Drive the export to completion on the calling thread."""
        if self._writer is None:
            self.start()
        while not self.finished:
            if not self.tick():
                remaining = self.frame_interval - (self._now_ms() - self._last_render_ms)
                sleep(max(0.0, remaining) / 1000)
        return self.output_path


def default_video_path(output_dir: str) -> str:
    return os.path.join(output_dir, VIDEO_FILENAME)
