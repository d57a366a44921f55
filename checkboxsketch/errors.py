class CheckboxSketchError(Exception):
    """Base class for errors raised by checkboxsketch."""


class MediaError(CheckboxSketchError):
    """A source file could not be opened or decoded."""


class ExportError(CheckboxSketchError):
    """Writing an export artifact failed."""


class ProcessingCancelled(CheckboxSketchError):
    """Frame processing was stopped at a batch boundary."""
