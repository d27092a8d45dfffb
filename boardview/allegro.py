"""Detection of Allegro board files, which are recognised but not supported."""

from __future__ import annotations

from .board import BoardFile


class AllegroFile(BoardFile):
    """Placeholder result for an Allegro file: always invalid, with an explanation."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        self.valid = False
        self.error_msg = "Allegro format is not supported. Please use Allegro® FREE Physical Viewer."

    @staticmethod
    def verify_format(data: bytes) -> bool:
        """Allegro files carry "all" or "vie" plus a version number at offset 0xf8."""
        data = bytes(data)
        return len(data) >= 0xFA and data[0xF8:0xFB] in (b"all", b"vie")