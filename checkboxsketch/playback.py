"""
Playback Clock

Loops over a frame sequence in real time. The displayed frame is derived
from elapsed wall-clock time rather than counted ticks, so a late tick
skips ahead instead of drifting.
"""

import logging
import math
import time
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# schedule(delay_ms, callback) -> handle, e.g. Tk's widget.after
Scheduler = Callable[[int, Callable[[], None]], Any]
Canceller = Callable[[Any], None]


class PlaybackState(Enum):
    PAUSED = "paused"
    PLAYING = "playing"


class PlaybackClock:
    """
    Two-state (playing / paused) clock over ``frame_count`` frames.

    Ticks are scheduled through an injected ``schedule``/``cancel`` pair so
    the clock runs on whatever loop owns the UI. Without a scheduler,
    ``tick()`` must be called by the owner.
    """

    def __init__(self,
                 frame_count: int,
                 fps: float,
                 on_frame: Optional[Callable[[int], None]] = None,
                 schedule: Optional[Scheduler] = None,
                 cancel: Optional[Canceller] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.frame_count = frame_count
        self.fps = fps
        self.on_frame = on_frame
        self._schedule = schedule
        self._cancel = cancel
        self._clock = clock

        self.state = PlaybackState.PAUSED
        self.current_frame = 0
        self._start_ms = 0.0
        self._pending = None

    @property
    def frame_interval(self) -> float:
        """Milliseconds per frame."""
        return 1000 / self.fps

    @property
    def is_playing(self) -> bool:
        return self.state is PlaybackState.PLAYING

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _set_frame(self, index: int):
        self.current_frame = index
        if self.on_frame:
            self.on_frame(index)

    def _schedule_tick(self):
        if self._schedule is None:
            return
        delay = max(1, int(self.frame_interval))
        self._pending = self._schedule(delay, self.tick)

    def _cancel_tick(self):
        if self._pending is not None and self._cancel is not None:
            self._cancel(self._pending)
        self._pending = None

    def play(self):
        if self.frame_count <= 0 or self.is_playing:
            return
        self.state = PlaybackState.PLAYING
        # Resume from the frame currently shown
        self._start_ms = self._now_ms() - self.current_frame * self.frame_interval
        logger.debug(f"Playback started at frame {self.current_frame}")
        self._schedule_tick()

    def pause(self):
        self.state = PlaybackState.PAUSED
        self._cancel_tick()
        logger.debug(f"Playback paused at frame {self.current_frame}")

    def toggle(self):
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def tick(self) -> int:
        """Advance to the frame due at the current time; returns its index."""
        self._pending = None
        if not self.is_playing:
            return self.current_frame

        elapsed = self._now_ms() - self._start_ms
        index = int(math.floor((elapsed / self.frame_interval) % self.frame_count))
        self._set_frame(index)
        self._schedule_tick()
        return index

    def seek(self, frame_index: int):
        if not 0 <= frame_index < self.frame_count:
            raise IndexError(
                f"Frame {frame_index} outside sequence of {self.frame_count} frames")
        if self.is_playing:
            self._start_ms = self._now_ms() - frame_index * self.frame_interval
        self._set_frame(frame_index)
