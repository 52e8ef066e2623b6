"""Trajectory loading via MDAnalysis."""

from __future__ import annotations

import logging
import os
import time
from typing import List, Optional

import MDAnalysis as mda

from mogura.config import TRAJECTORY_EXTENSIONS
from mogura.errors import LoadError
from mogura.model.trajectory import Frame, TrajectoryData

logger = logging.getLogger(__name__)


def _extension(path: str) -> str:
    _, ext = os.path.splitext(path)
    if not ext:
        raise LoadError(
            "missing_extension", f"trajectory_file: {path} has no extension.", path
        )
    return ext[1:].lower()


def load_trajectory(
    topology_path: str, trajectory_path: str, n_atoms: Optional[int] = None
) -> TrajectoryData:
    """Read every frame of a trajectory against a topology.

    Parameters
    ----------
    topology_path
        Structure file defining the atoms.
    trajectory_path
        Coordinate file (``xtc``, ``trr``, ``dcd`` or multi-model ``pdb``).
    n_atoms
        Expected atom count of the loaded structure, if known.

    Returns
    -------
    TrajectoryData
        Frames with dense ids starting at 0.

    Raises
    ------
    LoadError
        If a file is missing, the extension is unsupported, MDAnalysis
        fails, or the atom count does not match ``n_atoms``.
    """

    ext = _extension(trajectory_path)
    if ext not in TRAJECTORY_EXTENSIONS:
        raise LoadError(
            "unsupported_extension", "This extension is not supported.", trajectory_path
        )
    for path in (topology_path, trajectory_path):
        if not path or not os.path.exists(path):
            raise LoadError("file_not_found", "trajectory input not found", path)

    start = time.perf_counter()
    try:
        universe = mda.Universe(topology_path, trajectory_path)
    except Exception as exc:
        logger.exception("MDAnalysis failed to load trajectory")
        raise LoadError("load_failed", "Failed to load trajectory", str(exc)) from exc

    if n_atoms is not None and universe.atoms.n_atoms != n_atoms:
        raise LoadError(
            "atom_count_mismatch",
            "Trajectory atom count does not match the structure",
            {"expected": n_atoms, "found": universe.atoms.n_atoms},
        )

    frames: List[Frame] = []
    try:
        for index, _ts in enumerate(universe.trajectory):
            frames.append(Frame(index, universe.atoms.positions.copy()))
    except Exception as exc:
        logger.exception("Failed while reading trajectory frames")
        raise LoadError("load_failed", "Failed to read trajectory frames", str(exc)) from exc

    logger.debug(
        "Loaded trajectory %s: frames=%d atoms=%d in %.3fs",
        trajectory_path,
        len(frames),
        universe.atoms.n_atoms,
        time.perf_counter() - start,
    )
    return TrajectoryData(frames, n_atoms=universe.atoms.n_atoms)
