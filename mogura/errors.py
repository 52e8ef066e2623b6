"""Error types and API error payload helpers."""

from __future__ import annotations

from typing import Dict, Optional


class MoguraError(Exception):
    """Base exception type for Mogura.

    Attributes
    ----------
    code
        Stable error identifier.
    message
        Human-readable error message.
    details
        Optional detail payload for debugging.
    """

    def __init__(self, code: str, message: str, details: Optional[object] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def to_result(self) -> Dict[str, object]:
        """Return a JSON-ready error payload.

        Returns
        -------
        dict
            JSON-ready error payload.
        """
        return error_result(self.code, self.message, self.details)


class ModelError(MoguraError):
    """Errors raised by the application state store."""


class SelectionParseError(MoguraError):
    """Raised when atom selection text does not match the grammar.

    Attributes
    ----------
    position
        Character offset in the query where parsing stopped, if known.
    """

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        super().__init__("parse_error", message, {"position": position})
        self.position = position


class LoadError(MoguraError):
    """Raised when a structure or trajectory cannot be loaded."""


class FrameLookupError(MoguraError, IndexError):
    """Raised when a trajectory frame id is out of range."""

    def __init__(self, frame_id: int, n_frame: int) -> None:
        super().__init__(
            "frame_out_of_range",
            f"Frame {frame_id} out of range for {n_frame} frames",
            {"frame_id": frame_id, "n_frame": n_frame},
        )
        self.frame_id = frame_id
        self.n_frame = n_frame


class PdbWriterError(MoguraError):
    """Errors raised when formatting PDB output."""


def error_result(code: str, message: str, details: Optional[object] = None) -> Dict[str, object]:
    """Build an API error payload.

    Parameters
    ----------
    code
        Stable error identifier.
    message
        Human-readable summary.
    details
        Optional detail payload for logging or debugging.

    Returns
    -------
    dict
        JSON-ready error payload.
    """

    return {"ok": False, "error": {"code": code, "message": message, "details": details}}
