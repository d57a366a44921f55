"""
Checkbox Sketch

Turns still images and short videos into grids of checkboxes: every
cell is checked where the source is darker than a brightness threshold.
"""

from .config import ExportSettings, ProcessingParameters
from .errors import CheckboxSketchError, ExportError, MediaError, ProcessingCancelled
from .exporter import VideoExporter, render_checkboxes, render_grid
from .frames import Frame, FrameBatcher, SourceFrame
from .grid import Grid
from .playback import PlaybackClock, PlaybackState
from .sampler import canvas_size, sample
from .session import SketchSession
from .thresholder import auto_threshold, pixels_to_grid, threshold_pixels

__all__ = [
    'ExportSettings',
    'ProcessingParameters',
    'CheckboxSketchError',
    'ExportError',
    'MediaError',
    'ProcessingCancelled',
    'VideoExporter',
    'render_checkboxes',
    'render_grid',
    'Frame',
    'FrameBatcher',
    'SourceFrame',
    'Grid',
    'PlaybackClock',
    'PlaybackState',
    'canvas_size',
    'sample',
    'SketchSession',
    'auto_threshold',
    'pixels_to_grid',
    'threshold_pixels',
]
