"""
Processing parameters, UI presets and output defaults.
"""

from dataclasses import dataclass, replace

# Presets exposed in the window (label -> value)
RESOLUTION_PRESETS = {
    "Low (30×30)": 30,
    "Medium (50×50)": 50,
    "High (80×80)": 80,
}
EXPORT_SIZE_PRESETS = {
    "Small": 4,
    "Medium": 8,
    "Large": 16,
}
FPS_PRESETS = (15, 30, 60)

DEFAULT_RESOLUTION = 80
DEFAULT_THRESHOLD = 150
DEFAULT_EXPORT_SIZE = 8
DEFAULT_FPS = 30

# Frames handed to the worker pool at once
BATCH_SIZE = 10

PNG_FILENAME = "checkbox-sketch.png"
CHECKBOX_PNG_FILENAME = "checkbox-sketch-checkboxes.png"
VIDEO_FILENAME = "checkbox-sketch.webm"


@dataclass(frozen=True)
class ProcessingParameters:
    """Everything that determines how a source raster becomes a grid."""
    resolution: int = DEFAULT_RESOLUTION
    threshold: int = DEFAULT_THRESHOLD
    maintain_aspect_ratio: bool = True
    fps: int = DEFAULT_FPS

    def __post_init__(self):
        if self.resolution < 1:
            raise ValueError(f"Resolution must be positive, got {self.resolution}")
        if not 0 <= self.threshold <= 255:
            raise ValueError(f"Threshold must be within 0-255, got {self.threshold}")
        if self.fps < 1:
            raise ValueError(f"FPS must be positive, got {self.fps}")

    @property
    def frame_interval(self) -> float:
        """Milliseconds between two captured frames."""
        return 1000 / self.fps

    def with_changes(self, **changes) -> 'ProcessingParameters':
        return replace(self, **changes)


@dataclass
class ExportSettings:
    """Settings for exported artifacts."""
    export_size: int = DEFAULT_EXPORT_SIZE
    codec: str = 'VP90'  # VP9 in a WebM container
    checkbox_cell: int = 10  # Checkbox pitch in pixels before scaling
    checkbox_scale: int = 2
    checkbox_background: str = "#f9f9f9"
