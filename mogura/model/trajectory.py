"""Trajectory frame store and playback state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from mogura.errors import FrameLookupError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Frame:
    """Coordinates of every topology atom at one timestep.

    Attributes
    ----------
    frame_id
        Dense 0-based frame index.
    positions
        Read-only array of shape (n_atoms, 3) in angstrom, row ``i`` belongs
        to the atom with ``id == i``.
    """

    frame_id: int
    positions: np.ndarray

    def __post_init__(self) -> None:
        positions = np.array(self.positions, dtype=np.float32).reshape(-1, 3)
        positions.setflags(write=False)
        object.__setattr__(self, "positions", positions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return self.frame_id == other.frame_id and np.array_equal(
            self.positions, other.positions
        )

    @property
    def n_atoms(self) -> int:
        return int(self.positions.shape[0])

    def position(self, atom_id: int) -> Tuple[float, float, float]:
        """Return the coordinates of one atom.

        Raises
        ------
        IndexError
            If ``atom_id`` is outside ``[0, n_atoms)``.
        """

        if not 0 <= atom_id < self.n_atoms:
            raise IndexError(
                f"Atom {atom_id} out of range for frame {self.frame_id} with {self.n_atoms} atoms"
            )
        x, y, z = self.positions[atom_id]
        return (float(x), float(y), float(z))


class TrajectoryData:
    """All frames of a loaded trajectory."""

    def __init__(self, frames: Iterable[Frame], n_atoms: Optional[int] = None) -> None:
        """Store frames after checking they are aligned.

        Parameters
        ----------
        frames
            Frames in time order; ``frame_id`` must equal the list position.
        n_atoms
            Topology atom count each frame must match. Defaults to the first
            frame's atom count.

        Raises
        ------
        ValueError
            If frame ids are not dense or atom counts differ.
        """

        self._frames: Tuple[Frame, ...] = tuple(frames)
        if n_atoms is None and self._frames:
            n_atoms = self._frames[0].n_atoms
        for index, frame in enumerate(self._frames):
            if frame.frame_id != index:
                raise ValueError(f"Frame id {frame.frame_id} found at position {index}")
            if frame.n_atoms != n_atoms:
                raise ValueError(
                    f"Frame {index} has {frame.n_atoms} atoms, expected {n_atoms}"
                )
        self._n_atoms = n_atoms or 0

    @property
    def n_atoms(self) -> int:
        return self._n_atoms

    def n_frame(self) -> int:
        return len(self._frames)

    def frames(self) -> Tuple[Frame, ...]:
        return self._frames

    def frame(self, frame_id: int) -> Frame:
        """Return one frame.

        Raises
        ------
        FrameLookupError
            If ``frame_id`` is outside ``[0, n_frame())``.
        """

        if not 0 <= frame_id < len(self._frames):
            raise FrameLookupError(frame_id, len(self._frames))
        return self._frames[frame_id]


class PlaybackMode(Enum):
    STOPPED = "stopped"
    PLAY_ONCE = "play_once"
    PLAY_LOOP = "play_loop"
    SCRUB_ONCE = "scrub_once"


@dataclass(frozen=True)
class PlaybackState:
    """Playback position and mode.

    Attributes
    ----------
    n_frame
        Number of frames available.
    current_frame_id
        Frame drawn on the next tick, in ``[0, n_frame)`` (0 when empty).
    mode
        Current playback mode.
    """

    n_frame: int
    current_frame_id: int = 0
    mode: PlaybackMode = PlaybackMode.STOPPED

    def needs_redraw(self) -> bool:
        return self.mode is not PlaybackMode.STOPPED and self.n_frame > 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "n_frame": self.n_frame,
            "current_frame_id": self.current_frame_id,
            "mode": self.mode.value,
        }


def next_frame_id(state: PlaybackState) -> PlaybackState:
    """Step forward once; past the last frame, rewind to 0 and stop."""
    current = state.current_frame_id + 1
    if current >= state.n_frame:
        return replace(state, current_frame_id=0, mode=PlaybackMode.STOPPED)
    return replace(state, current_frame_id=current)


def loop_frame_id(state: PlaybackState) -> PlaybackState:
    """Step forward once; past the last frame, rewind to 0 and keep looping."""
    current = state.current_frame_id + 1
    if current >= state.n_frame:
        current = 0
    return replace(state, current_frame_id=current)


def advance(state: PlaybackState) -> PlaybackState:
    """Return the state after drawing the current frame once."""
    if state.n_frame <= 0:
        return replace(state, current_frame_id=0, mode=PlaybackMode.STOPPED)
    if state.mode is PlaybackMode.PLAY_ONCE:
        return next_frame_id(state)
    if state.mode is PlaybackMode.PLAY_LOOP:
        return loop_frame_id(state)
    if state.mode is PlaybackMode.SCRUB_ONCE:
        return replace(state, mode=PlaybackMode.STOPPED)
    return state


def tick(state: PlaybackState) -> Tuple[Optional[int], PlaybackState]:
    """Advance playback by one display tick.

    Returns
    -------
    tuple
        Frame id to draw this tick (None when nothing needs drawing) and the
        following state.
    """

    if not state.needs_redraw():
        return None, advance(state)
    return state.current_frame_id, advance(state)


def start(state: PlaybackState) -> PlaybackState:
    return replace(state, mode=PlaybackMode.PLAY_ONCE)


def stop(state: PlaybackState) -> PlaybackState:
    return replace(state, mode=PlaybackMode.STOPPED)


def start_loop(state: PlaybackState) -> PlaybackState:
    return replace(state, mode=PlaybackMode.PLAY_LOOP)


def seek(state: PlaybackState, frame_id: int) -> PlaybackState:
    """Jump to ``frame_id``.

    A stopped player redraws the new frame exactly once; a playing player
    keeps its mode and continues from the new frame.

    Raises
    ------
    FrameLookupError
        If ``frame_id`` is outside ``[0, n_frame)``.
    """

    if not 0 <= frame_id < state.n_frame:
        raise FrameLookupError(frame_id, state.n_frame)
    mode = state.mode
    if mode in (PlaybackMode.STOPPED, PlaybackMode.SCRUB_ONCE):
        mode = PlaybackMode.SCRUB_ONCE
    logger.debug("Seek to frame %d (%s)", frame_id, mode.value)
    return replace(state, current_frame_id=frame_id, mode=mode)
