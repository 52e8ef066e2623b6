"""Mutable viewer state shared across API calls."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from mogura.model.secondary_structure import SecondaryStructure
from mogura.model.structure import Bond, StructureData
from mogura.model.trajectory import PlaybackState, TrajectoryData


@dataclass
class ViewerState:
    """Mutable viewer state.

    Attributes
    ----------
    structure
        Loaded structure, if any.
    source_path
        File the structure came from; None for content or downloads.
    source_label
        Human-readable origin (path, ``"content"`` or ``"rcsb:<id>"``).
    extension
        Format extension of the loaded structure.
    bonds
        Cached inferred bonds for the loaded topology.
    bonds_future
        Background future computing ``bonds``.
    secondary_structure
        Cached per-residue labels for protein residues.
    trajectory
        Loaded trajectory frames, if any.
    playback
        Playback position and mode.
    warnings
        Warnings from the last structure load.
    load_timings
        Timing breakdown for the last load.
    loaded
        Whether a structure is currently loaded.
    """

    structure: Optional[StructureData] = None
    source_path: Optional[str] = None
    source_label: Optional[str] = None
    extension: Optional[str] = None
    bonds: Optional[List[Bond]] = None
    bonds_future: Optional[Future] = None
    secondary_structure: Optional[List[SecondaryStructure]] = None
    trajectory: Optional[TrajectoryData] = None
    playback: PlaybackState = field(default_factory=lambda: PlaybackState(n_frame=0))
    warnings: List[str] = field(default_factory=list)
    load_timings: Optional[Dict[str, float]] = None
    loaded: bool = False
