import random
import threading
import time

import numpy as np
import pytest

from checkboxsketch.config import ProcessingParameters
from checkboxsketch.errors import ProcessingCancelled
from checkboxsketch.frames import FrameBatcher, SourceFrame, frame_timestamps

PARAMS = ProcessingParameters(resolution=2, threshold=150, maintain_aspect_ratio=False)


def make_sources(count):
    frames = []
    for i in range(count):
        value = 0 if i % 2 == 0 else 255
        pixels = np.full((4, 4, 4), value, dtype=np.uint8)
        frames.append(SourceFrame(pixels=pixels, timestamp=i / 30, frame_index=i))
    return frames


class SlowFirstBatcher(FrameBatcher):
    """Finishes frames within a batch in reverse submission order."""

    def _process_one(self, source, params):
        time.sleep(0.002 * (self.batch_size - source.frame_index % self.batch_size))
        return super()._process_one(source, params)


class TestFrameBatcher:
    def test_preserves_count_and_order(self):
        frames = FrameBatcher().process(make_sources(25), PARAMS)
        assert len(frames) == 25
        assert [f.frame_index for f in frames] == list(range(25))

    def test_grids_follow_source_pixels(self):
        frames = FrameBatcher().process(make_sources(4), PARAMS)
        assert frames[0].grid.count_checked() == 4
        assert frames[1].grid.count_checked() == 0
        assert frames[2].timestamp == pytest.approx(2 / 30)

    def test_progress_reported_per_batch(self):
        calls = []
        FrameBatcher(batch_size=10).process(make_sources(25), PARAMS,
                                            on_progress=lambda done, total: calls.append((done, total)))
        assert calls == [(10, 25), (20, 25), (25, 25)]

    def test_yields_between_batches_only(self):
        yields = []
        batcher = FrameBatcher(batch_size=10, yield_control=lambda: yields.append(1))
        batcher.process(make_sources(25), PARAMS)
        assert len(yields) == 2

    def test_out_of_order_completion_and_input(self):
        sources = make_sources(25)
        random.Random(3).shuffle(sources)
        frames = SlowFirstBatcher().process(sources, PARAMS)
        assert [f.frame_index for f in frames] == list(range(25))

    def test_cancel_observed_at_batch_boundary(self):
        cancel = threading.Event()
        calls = []

        def progress(done, total):
            calls.append(done)
            cancel.set()

        with pytest.raises(ProcessingCancelled):
            FrameBatcher().process(make_sources(25), PARAMS,
                                   on_progress=progress, cancel_event=cancel)
        # The first batch ran to completion before the cancel took effect
        assert calls == [10]

    def test_empty_input(self):
        assert FrameBatcher().process([], PARAMS) == []

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            FrameBatcher(batch_size=0)


class TestFrameTimestamps:
    def test_count_is_floor_of_duration_times_fps(self):
        assert len(frame_timestamps(1.0, 30)) == 30
        assert len(frame_timestamps(2.5, 15)) == 37
        assert frame_timestamps(0.0, 60) == []

    def test_spacing(self):
        stamps = frame_timestamps(1.0, 15)
        assert stamps[0] == 0
        assert stamps[1] == pytest.approx(1 / 15)
        assert stamps[-1] == pytest.approx(14 / 15)
