"""
Sketch Session

The single owner of the working state: processing parameters, the
retained source media, the current grid, the video frame sequence and
its playback clock. Every parameter change recomputes from the retained
source pixels, never from an already quantized grid.
"""

import logging
import threading
import numpy as np
from PIL import Image
from typing import Callable, List, Optional

from . import exporter
from .config import ExportSettings, ProcessingParameters
from .errors import ExportError, MediaError
from .frames import Frame, FrameBatcher, SourceFrame
from .grid import Grid
from .playback import Canceller, PlaybackClock, Scheduler
from .processor import IMAGE, VIDEO, VideoProcessor, load_image, media_kind
from .sampler import sample
from .thresholder import auto_threshold, pixels_to_grid

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class SketchSession:
    """
    Coordinator for one image or video at a time.

    All mutating methods are expected to run on one thread (the UI loop).
    Long video work can be done off-thread with ``prepare_video`` or
    ``compute_frames`` and then installed with ``install_video`` or
    ``install_frames``.
    """

    def __init__(self,
                 params: Optional[ProcessingParameters] = None,
                 export_settings: Optional[ExportSettings] = None,
                 batcher: Optional[FrameBatcher] = None,
                 schedule: Optional[Scheduler] = None,
                 cancel: Optional[Canceller] = None,
                 on_grid_changed: Optional[Callable[[Optional[Grid]], None]] = None):
        self.params = params or ProcessingParameters()
        self.export_settings = export_settings or ExportSettings()
        self.batcher = batcher or FrameBatcher()
        self._schedule = schedule
        self._cancel = cancel
        self.on_grid_changed = on_grid_changed

        self.source_image: Optional[Image.Image] = None
        self.video_path: Optional[str] = None
        self.source_frames: List[SourceFrame] = []
        self.frames: List[Frame] = []
        self.frames_params: Optional[ProcessingParameters] = None
        self.grid: Optional[Grid] = None
        self.playback: Optional[PlaybackClock] = None

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    @property
    def has_video(self) -> bool:
        return bool(self.frames)

    @property
    def current_frame_index(self) -> int:
        return self.playback.current_frame if self.playback else 0

    def _notify(self):
        if self.on_grid_changed:
            self.on_grid_changed(self.grid)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_file(self, path: str, on_progress: Optional[ProgressCallback] = None) -> bool:
        """
        Load an image or video chosen by the user.

        Unsupported or unreadable files are ignored and leave the session
        unchanged.

        Returns:
            True if the file produced a grid.
        """
        kind = media_kind(path)
        try:
            if kind == IMAGE:
                self.load_image(load_image(path))
                return True
            if kind == VIDEO:
                self.load_video(path, on_progress=on_progress)
                return True
        except MediaError as e:
            logger.warning(f"Ignoring unreadable file: {e}")
            return False

        logger.debug(f"Ignoring unsupported file type: {path}")
        return False

    def _drop_video(self):
        self._stop_video()
        self.video_path = None
        self.source_frames = []
        self.frames = []
        self.frames_params = None

    def load_image(self, image: Image.Image):
        self._drop_video()
        self.source_image = image.convert("RGBA")
        self.recompute()
        logger.info(f"Loaded image {image.width}x{image.height} -> grid {self.grid.cols}x{self.grid.rows}")

    def prepare_video(self, path: str,
                      on_progress: Optional[ProgressCallback] = None,
                      cancel_event: Optional[threading.Event] = None,
                      params: Optional[ProcessingParameters] = None):
        """
        Decode and process a video without touching session state.

        Safe to call from a worker thread; pass the result to ``install_video``.
        Progress covers both phases: capture reports the first half, batch
        processing the second.

        Returns:
            (source_frames, frames)

        Raises:
            MediaError: The file is unreadable or too short to yield a frame
        """
        params = params or self.params

        def capture_progress(done, total):
            if on_progress:
                on_progress(done, 2 * total)

        def batch_progress(done, total):
            if on_progress:
                on_progress(total + done, 2 * total)

        with VideoProcessor(path) as processor:
            source_frames = processor.extract_frames(params.fps, on_progress=capture_progress)
        if not source_frames:
            raise MediaError(f"No frames captured from {path} at {params.fps} fps")

        frames = self.batcher.process(source_frames, params,
                                      on_progress=batch_progress, cancel_event=cancel_event)
        return source_frames, frames

    def install_video(self, path: str, source_frames: List[SourceFrame], frames: List[Frame],
                      params: Optional[ProcessingParameters] = None):
        """
        Make a processed frame sequence the current content.

        ``params`` are the parameters the frames were built with; when they
        no longer match the session, ``frames_stale`` reports it.
        """
        self._drop_video()
        self.source_image = None
        self.video_path = path
        self.source_frames = source_frames
        self.frames = frames
        self.frames_params = params or self.params
        self.grid = None
        self._reset_playback()
        self._show_frame(0)
        logger.info(f"Loaded video with {len(frames)} frames")

    def load_video(self, path: str, on_progress: Optional[ProgressCallback] = None):
        source_frames, frames = self.prepare_video(path, on_progress=on_progress)
        self.install_video(path, source_frames, frames)

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    @property
    def frames_stale(self) -> bool:
        """True when the video frames were built with other parameters."""
        return bool(self.source_frames) and self.frames_params != self.params

    def compute_frames(self,
                       source_frames: List[SourceFrame],
                       params: ProcessingParameters,
                       on_progress: Optional[ProgressCallback] = None,
                       cancel_event: Optional[threading.Event] = None) -> List[Frame]:
        """
        Re-run the batch pipeline over retained source frames.

        Touches no session state, so it can run on a worker thread; hand the
        result to ``install_frames``.

        Raises:
            ProcessingCancelled: cancel_event was set at a batch boundary
        """
        return self.batcher.process(source_frames, params,
                                    on_progress=on_progress, cancel_event=cancel_event)

    def install_frames(self, source_frames: List[SourceFrame], params: ProcessingParameters,
                       frames: List[Frame]) -> bool:
        """
        Swap in recomputed frames, keeping the current frame index.

        Results computed for another video or for superseded parameters
        are dropped.

        Returns:
            True if the frames were installed.
        """
        if source_frames is not self.source_frames or params != self.params:
            logger.debug("Dropping frames computed for superseded parameters")
            return False
        self.frames = frames
        self.frames_params = params
        self._reset_playback(keep_index=True)
        self._show_frame(min(self.current_frame_index, len(self.frames) - 1))
        return True

    def recompute(self, on_progress: Optional[ProgressCallback] = None):
        """Rebuild the grid or frame sequence from the retained source."""
        if self.source_image is not None:
            self.grid = pixels_to_grid(self.source_image, self.params)
            self._notify()
        elif self.source_frames:
            source_frames, params = self.source_frames, self.params
            frames = self.compute_frames(source_frames, params, on_progress=on_progress)
            self.install_frames(source_frames, params, frames)

    def _update_params(self, **changes):
        new_params = self.params.with_changes(**changes)
        if new_params == self.params:
            return False
        self.params = new_params
        return True

    def _params_changed(self, sync_video: bool):
        # With sync_video=False a loaded video is left stale for the caller
        # to recompute off-thread.
        if self.source_image is not None or sync_video:
            self.recompute()

    def set_resolution(self, resolution: int, sync_video: bool = True):
        if self._update_params(resolution=resolution):
            self._params_changed(sync_video)

    def set_maintain_aspect_ratio(self, maintain: bool, sync_video: bool = True):
        if self._update_params(maintain_aspect_ratio=maintain):
            self._params_changed(sync_video)

    def set_threshold(self, threshold: int, sync_video: bool = True):
        if self._update_params(threshold=threshold):
            self._params_changed(sync_video)

    def set_fps(self, fps: int, reload: bool = True) -> bool:
        """
        Change the capture rate.

        A loaded video has to be re-extracted at the new rate; with
        reload=False the caller is responsible for doing that.

        Returns:
            True if a loaded video is now stale.
        """
        stale = self._update_params(fps=fps) and self.video_path is not None
        if stale and reload:
            self.load_video(self.video_path)
            return False
        return stale

    def set_export_size(self, export_size: int):
        if export_size < 1:
            raise ValueError(f"Export size must be positive, got {export_size}")
        self.export_settings.export_size = export_size

    def sample_buffer(self) -> Optional[np.ndarray]:
        """The resampled pixels behind the grid currently shown."""
        if self.source_image is not None:
            source = self.source_image
        elif self.source_frames:
            source = self.source_frames[self.current_frame_index].pixels
        else:
            return None
        return sample(source, self.params.resolution, self.params.maintain_aspect_ratio)

    def auto_threshold(self, sync_video: bool = True) -> Optional[int]:
        """Set the threshold to the average brightness of the current sample."""
        buffer = self.sample_buffer()
        if buffer is None:
            return None
        value = auto_threshold(buffer)
        self.set_threshold(value, sync_video=sync_video)
        return value

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def toggle_cell(self, row: int, col: int):
        if self.grid is None:
            return
        self.grid.toggle_cell(row, col)
        self._notify()

    def invert(self):
        if self.grid is None:
            return
        self.grid.invert()
        self._notify()

    def clear(self):
        """Drop the grid and every retained source."""
        self._drop_video()
        self.source_image = None
        self.grid = None
        self._notify()

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def _reset_playback(self, keep_index: bool = False):
        index = self.current_frame_index if keep_index else 0
        was_playing = self.playback.is_playing if self.playback else False
        if self.playback:
            self.playback.pause()
        self.playback = PlaybackClock(
            frame_count=len(self.frames),
            fps=self.params.fps,
            on_frame=self._show_frame,
            schedule=self._schedule,
            cancel=self._cancel,
        )
        self.playback.current_frame = min(index, max(0, len(self.frames) - 1))
        if was_playing:
            self.playback.play()

    def _stop_video(self):
        if self.playback:
            self.playback.pause()
        self.playback = None

    def _show_frame(self, index: int):
        if not self.frames:
            return
        self.grid = self.frames[index].grid
        self._notify()

    def play(self):
        if self.playback:
            self.playback.play()

    def pause(self):
        if self.playback:
            self.playback.pause()

    def seek(self, frame_index: int):
        if self.playback:
            self.playback.seek(frame_index)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_png(self, output_dir: str) -> Optional[str]:
        if self.grid is None:
            return None
        try:
            return exporter.save_png(self.grid, output_dir, self.export_settings.export_size)
        except ExportError as e:
            logger.error(f"PNG export failed: {e}")
            return None

    def export_checkboxes(self, output_dir: str) -> Optional[str]:
        if self.grid is None:
            return None
        try:
            return exporter.save_checkbox_png(self.grid, output_dir, self.export_settings)
        except ExportError as e:
            logger.error(f"Checkbox export failed: {e}")
            return None

    def export_video(self, output_dir: str,
                     on_progress: Optional[ProgressCallback] = None,
                     on_complete: Optional[Callable[[str], None]] = None) -> Optional[exporter.VideoExporter]:
        """
        Start exporting the frame sequence.

        With a scheduler the export runs on ticks and the exporter is
        returned so it can be cancelled; without one it runs to completion
        before returning.
        """
        if not self.frames:
            return None
        try:
            video_exporter = exporter.VideoExporter(
                self.frames, self.params.fps,
                exporter.default_video_path(output_dir),
                settings=self.export_settings,
                on_progress=on_progress,
                on_complete=on_complete,
                schedule=self._schedule,
                cancel=self._cancel,
            )
            if self._schedule is None:
                video_exporter.run()
            else:
                video_exporter.start()
            return video_exporter
        except ExportError as e:
            logger.error(f"Video export failed: {e}")
            return None
