"""Exception types raised by the render core."""

from __future__ import annotations


class StationDeskError(Exception):
    """Base class for all StationDesk errors."""


class WavFormatError(StationDeskError):
    """Raised when input audio is not a 16-bit PCM RIFF/WAVE file."""


class RenderError(StationDeskError):
    """Raised when a render fails on I/O during load or save."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"{stage} failed: {message}")


class RenderCancelled(StationDeskError):
    """Raised when a render is cancelled at a block boundary."""

    def __init__(self, block: int, total_blocks: int):
        self.block = block
        self.total_blocks = total_blocks
        super().__init__("Processing cancelled")


class UploadError(StationDeskError):
    """Raised when the upload transport rejects a request."""
