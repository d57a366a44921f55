import customtkinter as ctk
from tkinter import filedialog
import tkinter as tk
import logging
import os
import tempfile
import threading
from PIL import ImageTk

from .config import (DEFAULT_EXPORT_SIZE, DEFAULT_RESOLUTION, DEFAULT_THRESHOLD,
                     EXPORT_SIZE_PRESETS, FPS_PRESETS, RESOLUTION_PRESETS)
from .errors import CheckboxSketchError, ProcessingCancelled
from .exporter import render_grid
from .processor import IMAGE, VIDEO, media_kind
from .session import SketchSession

logger = logging.getLogger(__name__)

PREVIEW_SIZE = 480


class DesignToken:
    """Greyscale dark theme"""

    WHITE = "#FEFEFE"
    GRAY_400 = "#A3A3A3"
    GRAY_500 = "#737373"

    BG = "#1A1A1A"
    CARD = "#2A2A2A"
    BORDER = "#3A3A3A"
    BTN = "#404040"
    BTN_HOVER = "#4A4A4A"
    BTN_PRIMARY = "#525252"
    BTN_PRIMARY_HOVER = "#5C5C5C"

    FONT_FAMILY = "Helvetica Neue"

    SPACE_XS = 4
    SPACE_SM = 8
    SPACE_MD = 16
    SPACE_LG = 24

    RADIUS_SM = 2
    RADIUS_MD = 4

    @staticmethod
    def get_font(size=14, weight="normal"):
        return (DesignToken.FONT_FAMILY, size, weight)


class CheckboxSketchApp(ctk.CTk):
    def __init__(self):
        super().__init__()

        ctk.set_appearance_mode("dark")

        self.title("CHECKBOX SKETCH")
        self.geometry("560x980")
        self.configure(fg_color=DesignToken.BG)

        self.session = SketchSession(
            schedule=self.after,
            cancel=self.after_cancel,
            on_grid_changed=self._on_grid_changed,
        )
        self.video_exporter = None
        self.loading = False
        self.recompute_cancel = None

        # --- Variables ---
        self.file_name_display = ctk.StringVar(value="No file selected")
        default_out = os.path.join(tempfile.gettempdir(), "checkbox_sketch_output")
        self.output_path = ctk.StringVar(value=default_out)
        self.output_name_display = ctk.StringVar(value=os.path.basename(default_out))

        resolution_label = next(k for k, v in RESOLUTION_PRESETS.items() if v == DEFAULT_RESOLUTION)
        export_label = next(k for k, v in EXPORT_SIZE_PRESETS.items() if v == DEFAULT_EXPORT_SIZE)
        self.resolution_str = ctk.StringVar(value=resolution_label)
        self.aspect_str = ctk.StringVar(value="Original")
        self.threshold_display = ctk.StringVar(value=f"{DEFAULT_THRESHOLD}/255")
        self.export_size_str = ctk.StringVar(value=export_label)
        self.fps_str = ctk.StringVar(value=str(self.session.params.fps))
        self.status = ctk.StringVar(value="Upload an image or video to get started")

        self.preview_photo = None
        self.preview_cell = 1

        self.create_ui()

    def create_section_label(self, parent, title):
        ctk.CTkLabel(
            parent,
            text=title.upper(),
            font=DesignToken.get_font(11, "bold"),
            text_color=DesignToken.GRAY_500
        ).pack(anchor="w", pady=(0, DesignToken.SPACE_SM))

    def _card(self, parent):
        section = ctk.CTkFrame(parent, fg_color=DesignToken.CARD,
                               corner_radius=DesignToken.RADIUS_MD)
        section.pack(fill="x", pady=(0, DesignToken.SPACE_LG))
        inner = ctk.CTkFrame(section, fg_color="transparent")
        inner.pack(fill="x", padx=DesignToken.SPACE_MD, pady=DesignToken.SPACE_MD)
        return inner

    def _button(self, parent, text, command, width=90):
        return ctk.CTkButton(
            parent,
            text=text,
            width=width,
            height=30,
            command=command,
            fg_color=DesignToken.BTN,
            hover_color=DesignToken.BTN_HOVER,
            text_color=DesignToken.WHITE,
            corner_radius=DesignToken.RADIUS_SM,
            font=DesignToken.get_font(12)
        )

    def _segmented(self, parent, values, variable, command):
        return ctk.CTkSegmentedButton(
            parent,
            values=values,
            variable=variable,
            command=command,
            height=28,
            corner_radius=DesignToken.RADIUS_SM,
            fg_color=DesignToken.BORDER,
            selected_color=DesignToken.GRAY_500,
            selected_hover_color=DesignToken.GRAY_400,
            unselected_color=DesignToken.BORDER,
            font=DesignToken.get_font(11)
        )

    def _field_label(self, parent, text):
        ctk.CTkLabel(
            parent,
            text=text,
            font=DesignToken.get_font(10, "bold"),
            text_color=DesignToken.GRAY_500
        ).pack(anchor="w", pady=(DesignToken.SPACE_XS, 0))

    def create_ui(self):
        self.main = ctk.CTkScrollableFrame(self, fg_color="transparent")
        self.main.pack(fill="both", expand=True,
                       padx=DesignToken.SPACE_LG, pady=DesignToken.SPACE_LG)

        # ═══════════════════════════════════════════════════════════
        # SECTION: INPUT
        # ═══════════════════════════════════════════════════════════
        self.create_section_label(self.main, "Input")
        input_inner = self._card(self.main)

        input_row = ctk.CTkFrame(input_inner, fg_color="transparent")
        input_row.pack(fill="x")
        input_row.columnconfigure(1, weight=1)
        input_row.columnconfigure(3, weight=1)

        self.btn_upload = self._button(input_row, "Upload", self.browse_file, width=70)
        self.btn_upload.grid(row=0, column=0, sticky="w")
        ctk.CTkLabel(
            input_row,
            textvariable=self.file_name_display,
            font=DesignToken.get_font(11),
            text_color=DesignToken.GRAY_400,
            anchor="w"
        ).grid(row=0, column=1, sticky="ew", padx=(DesignToken.SPACE_SM, DesignToken.SPACE_MD))

        self._button(input_row, "Output", self.browse_output, width=70).grid(row=0, column=2, sticky="w")
        ctk.CTkLabel(
            input_row,
            textvariable=self.output_name_display,
            font=DesignToken.get_font(11),
            text_color=DesignToken.GRAY_400,
            anchor="w"
        ).grid(row=0, column=3, sticky="ew", padx=(DesignToken.SPACE_SM, 0))

        # ═══════════════════════════════════════════════════════════
        # SECTION: SETTINGS
        # ═══════════════════════════════════════════════════════════
        self.create_section_label(self.main, "Settings")
        settings_inner = self._card(self.main)

        self._field_label(settings_inner, "RESOLUTION")
        self._segmented(settings_inner, list(RESOLUTION_PRESETS), self.resolution_str,
                        self._on_resolution_change).pack(fill="x", pady=(DesignToken.SPACE_XS, 0))

        self._field_label(settings_inner, "ASPECT RATIO")
        self._segmented(settings_inner, ["Square", "Original"], self.aspect_str,
                        self._on_aspect_change).pack(fill="x", pady=(DesignToken.SPACE_XS, 0))

        self._field_label(settings_inner, "BRIGHTNESS THRESHOLD")
        threshold_row = ctk.CTkFrame(settings_inner, fg_color="transparent")
        threshold_row.pack(fill="x", pady=(DesignToken.SPACE_XS, 0))
        threshold_row.columnconfigure(1, weight=1)
        ctk.CTkLabel(threshold_row, text="Dark", font=DesignToken.get_font(10),
                     text_color=DesignToken.GRAY_400).grid(row=0, column=0)
        self.threshold_slider = ctk.CTkSlider(
            threshold_row, from_=0, to=255, number_of_steps=255,
            command=self._on_threshold_change)
        self.threshold_slider.set(DEFAULT_THRESHOLD)
        self.threshold_slider.grid(row=0, column=1, sticky="ew", padx=DesignToken.SPACE_SM)
        ctk.CTkLabel(threshold_row, text="Light", font=DesignToken.get_font(10),
                     text_color=DesignToken.GRAY_400).grid(row=0, column=2)
        ctk.CTkLabel(threshold_row, textvariable=self.threshold_display, width=60,
                     font=DesignToken.get_font(10),
                     text_color=DesignToken.GRAY_400).grid(row=0, column=3)
        self._button(threshold_row, "Auto", self.auto_threshold, width=50).grid(row=0, column=4)

        self._field_label(settings_inner, "VIDEO FPS")
        self._segmented(settings_inner, [str(f) for f in FPS_PRESETS], self.fps_str,
                        self._on_fps_change).pack(fill="x", pady=(DesignToken.SPACE_XS, 0))

        # ═══════════════════════════════════════════════════════════
        # SECTION: SKETCH
        # ═══════════════════════════════════════════════════════════
        self.create_section_label(self.main, "Sketch")
        sketch_inner = self._card(self.main)

        self.canvas = tk.Canvas(sketch_inner, width=PREVIEW_SIZE, height=PREVIEW_SIZE,
                                bg=DesignToken.CARD, highlightthickness=0)
        self.canvas.pack()
        self.canvas.bind("<Button-1>", self._on_canvas_click)

        playback_row = ctk.CTkFrame(sketch_inner, fg_color="transparent")
        playback_row.pack(fill="x", pady=(DesignToken.SPACE_SM, 0))
        playback_row.columnconfigure(1, weight=1)
        self.btn_play = self._button(playback_row, "Play", self.toggle_playback, width=60)
        self.btn_play.grid(row=0, column=0)
        self.frame_slider = ctk.CTkSlider(playback_row, from_=0, to=1,
                                          command=self._on_frame_slider)
        self.frame_slider.set(0)
        self.frame_slider.grid(row=0, column=1, sticky="ew", padx=DesignToken.SPACE_SM)

        edit_row = ctk.CTkFrame(sketch_inner, fg_color="transparent")
        edit_row.pack(fill="x", pady=(DesignToken.SPACE_SM, 0))
        self._button(edit_row, "Invert", self.session.invert).pack(side="left")
        self._button(edit_row, "Clear", self.clear).pack(side="left", padx=DesignToken.SPACE_SM)

        # ═══════════════════════════════════════════════════════════
        # SECTION: EXPORT
        # ═══════════════════════════════════════════════════════════
        self.create_section_label(self.main, "Export")
        export_inner = self._card(self.main)

        self._field_label(export_inner, "EXPORT SIZE")
        self._segmented(export_inner, list(EXPORT_SIZE_PRESETS), self.export_size_str,
                        self._on_export_size_change).pack(fill="x", pady=(DesignToken.SPACE_XS, 0))

        export_row = ctk.CTkFrame(export_inner, fg_color="transparent")
        export_row.pack(fill="x", pady=(DesignToken.SPACE_SM, 0))
        self._button(export_row, "Save as Pixels", self.save_pixels, width=120).pack(side="left")
        self._button(export_row, "Save as Checkboxes", self.save_checkboxes,
                     width=140).pack(side="left", padx=DesignToken.SPACE_SM)
        self.btn_video = self._button(export_row, "Save Video", self.save_video, width=100)
        self.btn_video.pack(side="left")

        self.progress = ctk.CTkProgressBar(self.main, height=4, corner_radius=0,
                                           progress_color=DesignToken.WHITE)
        self.progress.pack(fill="x")
        self.progress.set(0)

        ctk.CTkLabel(self.main, textvariable=self.status, font=DesignToken.get_font(11),
                     text_color=DesignToken.GRAY_400).pack(anchor="w", pady=(DesignToken.SPACE_SM, 0))

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def _on_grid_changed(self, grid):
        self.canvas.delete("all")
        self.preview_photo = None
        if grid is None or grid.rows == 0 or grid.cols == 0:
            return

        self.preview_cell = max(1, PREVIEW_SIZE // max(grid.rows, grid.cols))
        img = render_grid(grid, self.preview_cell).convert("RGB")
        self.preview_photo = ImageTk.PhotoImage(img)
        self.canvas.create_image(0, 0, image=self.preview_photo, anchor="nw")

        if self.session.has_video:
            self.frame_slider.set(self.session.current_frame_index)

    def _on_canvas_click(self, event):
        grid = self.session.grid
        if grid is None:
            return
        row, col = event.y // self.preview_cell, event.x // self.preview_cell
        if row < grid.rows and col < grid.cols:
            self.session.toggle_cell(row, col)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def browse_file(self):
        f = filedialog.askopenfilename(filetypes=[
            ("Images and Videos", "*.png *.jpg *.jpeg *.gif *.webp *.bmp *.mp4 *.mov *.webm *.avi *.mkv"),
            ("All Files", "*.*"),
        ])
        if not f:
            return
        self.file_name_display.set(os.path.basename(f))
        self._load_in_background(f)

    def browse_output(self):
        d = filedialog.askdirectory()
        if d:
            self.output_path.set(d)
            self.output_name_display.set(os.path.basename(d) if os.path.basename(d) else d)

    def _load_in_background(self, path):
        kind = media_kind(path)
        if kind == IMAGE:
            if self.session.load_file(path):
                self.status.set("Click cells to edit • Checked = dark pixels")
            return
        if kind != VIDEO or self.loading:
            return

        self.loading = True
        self.btn_upload.configure(state="disabled", text="...")
        self.progress.set(0)
        self.status.set("Processing video...")
        if self.recompute_cancel is not None:
            self.recompute_cancel.set()
            self.recompute_cancel = None
        params = self.session.params
        threading.Thread(target=self._run_video_load, args=(path, params), daemon=True).start()

    def _run_video_load(self, path, params):
        def report(done, total):
            self.after(0, lambda: self.progress.set(done / total if total else 1))

        try:
            source_frames, frames = self.session.prepare_video(path, on_progress=report, params=params)
        except CheckboxSketchError as e:
            logger.warning(f"Could not load video: {e}")
            self.after(0, lambda: self._on_video_loaded(path, params, None, None))
            return
        self.after(0, lambda: self._on_video_loaded(path, params, source_frames, frames))

    def _on_video_loaded(self, path, params, source_frames, frames):
        self.loading = False
        self.btn_upload.configure(state="normal", text="Upload")
        if frames is None:
            self.status.set("Could not read that video")
            return

        self.session.install_video(path, source_frames, frames, params=params)
        self.frame_slider.configure(from_=0, to=max(1, len(frames) - 1),
                                    number_of_steps=max(1, len(frames) - 1))
        self.frame_slider.set(0)
        self.btn_play.configure(text="Play")
        self.progress.set(1)
        self.status.set(f"{len(frames)} frames • Click cells to edit")
        # Settings may have moved while the video was loading
        if params.fps != self.session.params.fps:
            self._load_in_background(path)
        else:
            self._refresh_video_frames()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def _on_resolution_change(self, value):
        self.session.set_resolution(RESOLUTION_PRESETS[value], sync_video=False)
        self._refresh_video_frames()

    def _on_aspect_change(self, value):
        self.session.set_maintain_aspect_ratio(value == "Original", sync_video=False)
        self._refresh_video_frames()

    def _on_threshold_change(self, value):
        threshold = int(round(value))
        self.threshold_display.set(f"{threshold}/255")
        self.session.set_threshold(threshold, sync_video=False)
        self._refresh_video_frames()

    def auto_threshold(self):
        value = self.session.auto_threshold(sync_video=False)
        if value is not None:
            self.threshold_slider.set(value)
            self.threshold_display.set(f"{value}/255")
            self._refresh_video_frames()

    def _refresh_video_frames(self):
        """Recompute stale video frames on a worker, superseding any run in flight."""
        if self.loading or not self.session.frames_stale:
            return
        if self.recompute_cancel is not None:
            self.recompute_cancel.set()

        cancel_event = threading.Event()
        self.recompute_cancel = cancel_event
        source_frames, params = self.session.source_frames, self.session.params
        self.status.set("Updating frames...")
        threading.Thread(target=self._run_video_recompute,
                         args=(source_frames, params, cancel_event), daemon=True).start()

    def _run_video_recompute(self, source_frames, params, cancel_event):
        def report(done, total):
            self.after(0, lambda: self.progress.set(done / total if total else 1))

        try:
            frames = self.session.compute_frames(source_frames, params, on_progress=report,
                                                 cancel_event=cancel_event)
        except ProcessingCancelled:
            return
        self.after(0, lambda: self._on_video_recomputed(source_frames, params, frames, cancel_event))

    def _on_video_recomputed(self, source_frames, params, frames, cancel_event):
        if cancel_event is self.recompute_cancel:
            self.recompute_cancel = None
        if self.session.install_frames(source_frames, params, frames):
            self.status.set(f"{len(frames)} frames • Click cells to edit")

    def _on_fps_change(self, value):
        if self.session.set_fps(int(value), reload=False):
            self._load_in_background(self.session.video_path)

    def _on_export_size_change(self, value):
        self.session.set_export_size(EXPORT_SIZE_PRESETS[value])

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def toggle_playback(self):
        if self.session.playback is None:
            return
        self.session.playback.toggle()
        self.btn_play.configure(text="Pause" if self.session.playback.is_playing else "Play")

    def _on_frame_slider(self, value):
        if self.session.has_video:
            self.session.seek(int(round(value)))

    def clear(self):
        self.session.clear()
        self.file_name_display.set("No file selected")
        self.btn_play.configure(text="Play")
        self.progress.set(0)
        self.status.set("Upload an image or video to get started")

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def save_pixels(self):
        path = self.session.export_png(self.output_path.get())
        if path:
            self.status.set(f"Saved {os.path.basename(path)}")

    def save_checkboxes(self):
        path = self.session.export_checkboxes(self.output_path.get())
        if path:
            self.status.set(f"Saved {os.path.basename(path)}")

    def save_video(self):
        if self.video_exporter is not None and not self.video_exporter.finished:
            self.video_exporter.cancel()
            self.video_exporter = None
            self.btn_video.configure(text="Save Video")
            self.status.set("Video export cancelled")
            return

        def report(done, total):
            self.progress.set(done / total)
            self.status.set(f"Exporting frame {done}/{total}")

        def complete(path):
            self.video_exporter = None
            self.btn_video.configure(text="Save Video")
            self.status.set(f"Saved {os.path.basename(path)}")

        self.video_exporter = self.session.export_video(
            self.output_path.get(), on_progress=report, on_complete=complete)
        if self.video_exporter is not None:
            self.btn_video.configure(text="Cancel")
