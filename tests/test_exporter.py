import numpy as np
import pytest
from PIL import Image

from checkboxsketch import exporter
from checkboxsketch.config import CHECKBOX_PNG_FILENAME, PNG_FILENAME, ExportSettings
from checkboxsketch.errors import ExportError
from checkboxsketch.exporter import (VideoExporter, render_checkboxes, render_grid,
                                     render_grid_into, save_checkbox_png, save_png)
from checkboxsketch.frames import Frame
from checkboxsketch.grid import Grid

DIAGONAL = [[True, False], [False, True]]


class FakeWriter:
    opened = True
    instances = []

    def __init__(self, path, fourcc, fps, size):
        self.path = path
        self.fps = fps
        self.size = size
        self.written = []
        self.released = False
        FakeWriter.instances.append(self)

    def isOpened(self):
        return self.opened

    def write(self, frame):
        self.written.append(frame.copy())

    def release(self):
        self.released = True


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += max(seconds, 0.001)


@pytest.fixture
def fake_writer(monkeypatch):
    FakeWriter.instances = []
    FakeWriter.opened = True
    monkeypatch.setattr(exporter.cv2, "VideoWriter", FakeWriter)
    return FakeWriter


@pytest.fixture
def frames():
    grids = [Grid.from_list(DIAGONAL), Grid.blank(2, 2), Grid.from_list([[True, True], [True, True]])]
    return [Frame(grid=g, timestamp=i / 10, frame_index=i) for i, g in enumerate(grids)]


class TestRenderGrid:
    def test_blocks_match_checked_cells(self):
        img = render_grid(Grid.from_list(DIAGONAL), 4)
        assert img.size == (8, 8)
        pixels = np.array(img)
        assert (pixels[0:4, 0:4] == 0).all()
        assert (pixels[4:8, 4:8] == 0).all()
        assert (pixels[0:4, 4:8] == 255).all()
        assert (pixels[4:8, 0:4] == 255).all()

    def test_non_square_grid(self):
        img = render_grid(Grid.blank(3, 5), 2)
        assert img.size == (10, 6)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            render_grid(Grid.blank(1, 1), 0)

    def test_buffer_mismatch(self):
        with pytest.raises(ExportError):
            render_grid_into(np.empty((3, 3), dtype=np.uint8), Grid.blank(2, 2), 2)


class TestCheckboxRender:
    def test_size_and_colors(self):
        settings = ExportSettings(checkbox_cell=10, checkbox_scale=2)
        img = render_checkboxes(Grid.from_list(DIAGONAL), settings)
        assert img.size == (40, 40)
        # Background gutter
        assert img.getpixel((0, 0)) == (249, 249, 249)
        # Inside a checked box
        assert img.getpixel((4, 4)) == (31, 111, 235)
        # Inside an unchecked box
        assert img.getpixel((26, 6)) == (255, 255, 255)


class TestSave:
    def test_save_png(self, tmp_path):
        path = save_png(Grid.from_list(DIAGONAL), str(tmp_path), 8)
        assert path.endswith(PNG_FILENAME)
        with Image.open(path) as img:
            assert img.size == (16, 16)

    def test_save_checkbox_png(self, tmp_path):
        path = save_checkbox_png(Grid.blank(2, 3), str(tmp_path / "out"))
        assert path.endswith(CHECKBOX_PNG_FILENAME)
        with Image.open(path) as img:
            assert img.size == (60, 40)

    def test_unwritable_destination(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(ExportError):
            save_png(Grid.blank(1, 1), str(blocker), 4)


class TestVideoExporter:
    def test_frames_written_only_when_due(self, fake_writer, frames, tmp_path):
        clock = FakeClock()
        progress = []
        completed = []
        video = VideoExporter(frames, fps=10, output_path=str(tmp_path / "out.webm"),
                              settings=ExportSettings(export_size=4),
                              on_progress=lambda i, n: progress.append((i, n)),
                              on_complete=completed.append, clock=clock)
        video.start()
        writer = fake_writer.instances[0]
        assert writer.size == (8, 8)

        assert video.tick() is True
        clock.now = 0.05
        assert video.tick() is False
        clock.now = 0.1
        assert video.tick() is True
        # Late tick still writes exactly one frame
        clock.now = 0.9
        assert video.tick() is True

        assert progress == [(1, 3), (2, 3), (3, 3)]
        assert completed == [str(tmp_path / "out.webm")]
        assert writer.released
        assert len(writer.written) == 3
        assert writer.written[0].shape == (8, 8, 3)
        assert (writer.written[0][0:4, 0:4] == 0).all()
        assert (writer.written[1] == 255).all()
        assert video.tick() is False

    def test_run_to_completion(self, fake_writer, frames, tmp_path):
        clock = FakeClock()
        video = VideoExporter(frames, fps=30, output_path=str(tmp_path / "out.webm"), clock=clock)
        assert video.run(sleep=clock.sleep) == str(tmp_path / "out.webm")
        assert video.finished
        assert len(fake_writer.instances[0].written) == 3

    def test_cancel_releases_writer(self, fake_writer, frames, tmp_path):
        clock = FakeClock()
        video = VideoExporter(frames, fps=10, output_path=str(tmp_path / "out.webm"), clock=clock)
        video.start()
        video.tick()
        video.cancel()
        assert video.cancelled
        assert fake_writer.instances[0].released
        clock.now = 5
        assert video.tick() is False

    def test_writer_failure(self, fake_writer, frames, tmp_path):
        fake_writer.opened = False
        video = VideoExporter(frames, fps=10, output_path=str(tmp_path / "out.webm"))
        with pytest.raises(ExportError):
            video.start()

    def test_no_frames(self, tmp_path):
        with pytest.raises(ExportError):
            VideoExporter([], fps=10, output_path=str(tmp_path / "out.webm"))
