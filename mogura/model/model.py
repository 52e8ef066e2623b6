"""Model layer for Mogura."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from mogura.errors import ModelError
from mogura.model import trajectory as playback
from mogura.model.secondary_structure import (
    assign_secondary_structure,
    ramachandran_table,
    ss_string,
    table_payload,
)
from mogura.model.selection import parse_selection
from mogura.model.state import ViewerState
from mogura.model.structure import Bond, StructureData, compute_bonds
from mogura.model.trajectory import PlaybackState
from mogura.services.loader import (
    StructureLoadResult,
    fetch_pdb,
    structure_loader,
    structure_loader_from_content,
)
from mogura.services.pdb_writer import write_pdb
from mogura.services.trajectory_loader import load_trajectory

logger = logging.getLogger(__name__)


class Model:
    """Core application model and state store.

    Attributes
    ----------
    _state
        Mutable viewer state.
    _cpu_submit
        Optional CPU executor submit function.
    """

    def __init__(self, cpu_submit: Optional[Callable[..., object]] = None) -> None:
        """Initialize the model.

        Parameters
        ----------
        cpu_submit
            Optional executor submission function for CPU-heavy work.

        Returns
        -------
        None
            This method does not return a value.
        """

        self._lock = threading.Lock()
        self._state = ViewerState()
        self._cpu_submit = cpu_submit

    def _require_structure(self) -> StructureData:
        if not self._state.loaded or self._state.structure is None:
            raise ModelError("not_loaded", "No structure loaded")
        return self._state.structure

    def _install(self, result: StructureLoadResult, label: str) -> Dict[str, object]:
        bonds_future = None
        if self._cpu_submit:
            try:
                bonds_future = self._cpu_submit(
                    compute_bonds, result.structure.positions()
                )
            except Exception:
                logger.exception("Failed to schedule bond inference")
        with self._lock:
            self._state.structure = result.structure
            self._state.source_path = result.source_path
            self._state.source_label = label
            self._state.extension = result.extension
            self._state.bonds = None
            self._state.bonds_future = bonds_future
            self._state.secondary_structure = None
            self._state.trajectory = None
            self._state.playback = PlaybackState(n_frame=0)
            self._state.warnings = list(result.warnings)
            self._state.load_timings = dict(result.timings)
            self._state.loaded = True
        logger.debug(
            "Timings: universe=%.3fs build=%.3fs total=%.3fs",
            result.timings.get("universe", 0.0),
            result.timings.get("build", 0.0),
            result.timings.get("total", 0.0),
        )
        return {
            "ok": True,
            "source": label,
            "natoms": result.natoms,
            "nresidues": result.nresidues,
            "center": list(result.structure.center()),
            "warnings": list(result.warnings),
        }

    def load_structure(self, path: str) -> Dict[str, object]:
        """Load a structure file and reset trajectory state.

        Parameters
        ----------
        path
            Path to a ``.pdb`` or ``.gro`` file.

        Returns
        -------
        dict
            Payload containing load metadata.

        Raises
        ------
        LoadError
            If the file cannot be loaded.
        """

        result = structure_loader(path)
        return self._install(result, path)

    def load_structure_from_content(self, content: str, extension: str) -> Dict[str, object]:
        """Load a structure from in-memory text.

        Raises
        ------
        ModelError
            If ``content`` is not a string.
        LoadError
            If the content cannot be parsed.
        """

        if not isinstance(content, str):
            raise ModelError("invalid_input", "content must be a string")
        result = structure_loader_from_content(content, extension)
        return self._install(result, "content")

    def fetch_structure(self, pdb_id: str) -> Dict[str, object]:
        """Download a PDB entry from RCSB and load it."""
        result = fetch_pdb(pdb_id)
        return self._install(result, f"rcsb:{pdb_id.strip().upper()}")

    def load_trajectory(self, path: str) -> Dict[str, object]:
        """Load trajectory frames for the current structure.

        Parameters
        ----------
        path
            Trajectory file path.

        Returns
        -------
        dict
            Payload containing the frame count and playback state.

        Raises
        ------
        ModelError
            If no structure is loaded or it was not loaded from a file.
        LoadError
            If the trajectory cannot be read or does not match the structure.
        """

        with self._lock:
            structure = self._require_structure()
            topology_path = self._state.source_path
        if topology_path is None:
            raise ModelError(
                "invalid_input", "Trajectories require a structure loaded from a file"
            )
        trajectory = load_trajectory(topology_path, path, n_atoms=len(structure))
        state = PlaybackState(n_frame=trajectory.n_frame())
        with self._lock:
            if self._state.structure is not structure:
                raise ModelError("not_loaded", "Structure changed while loading trajectory")
            self._state.trajectory = trajectory
            self._state.playback = state
        return {"ok": True, "n_frame": trajectory.n_frame(), "playback": state.to_dict()}

    def get_summary(self) -> Dict[str, object]:
        """Return counts and state for the loaded structure.

        Returns
        -------
        dict
            Payload with atom, residue, per-category and frame counts.

        Raises
        ------
        ModelError
            If no structure is loaded.
        """

        with self._lock:
            structure = self._require_structure()
            label = self._state.source_label
            extension = self._state.extension
            trajectory = self._state.trajectory
            state = self._state.playback
            warnings = list(self._state.warnings)
        return {
            "ok": True,
            "source": label,
            "format": extension,
            "natoms": len(structure),
            "nresidues": len(structure.residues()),
            "counts": {
                "protein": len(structure.protein()),
                "backbone": len(structure.backbone()),
                "sidechain": len(structure.sidechain()),
                "water": len(structure.water()),
                "ion": len(structure.ion()),
            },
            "center": list(structure.center()),
            "n_frame": trajectory.n_frame() if trajectory is not None else 0,
            "playback": state.to_dict(),
            "warnings": warnings,
        }

    def get_center(self) -> Dict[str, object]:
        with self._lock:
            structure = self._require_structure()
        return {"ok": True, "center": list(structure.center())}

    def _bonds(self) -> List[Bond]:
        with self._lock:
            structure = self._require_structure()
            cached = self._state.bonds
            future = self._state.bonds_future
        if cached is not None:
            return cached
        if future is not None:
            try:
                bonds = future.result()
            except Exception:
                logger.exception("Background bond inference failed; recomputing")
                bonds = structure.bonds_indirected()
        else:
            start = time.perf_counter()
            bonds = structure.bonds_indirected()
            logger.debug("Bond inference took %.3fs", time.perf_counter() - start)
        with self._lock:
            if self._state.structure is structure:
                self._state.bonds = bonds
                self._state.bonds_future = None
        return bonds

    def get_bonds(self) -> Dict[str, object]:
        """Return the inferred bonds of the loaded topology.

        Bonds come from the topology coordinates and are reused unchanged
        for every trajectory frame.

        Returns
        -------
        dict
            Payload containing ``[i, j]`` pairs with ``i > j``.

        Raises
        ------
        ModelError
            If no structure is loaded.
        """

        bonds = self._bonds()
        return {"ok": True, "bonds": [[i, j] for i, j in bonds], "nbonds": len(bonds)}

    def select(self, query: str) -> Dict[str, object]:
        """Evaluate a selection query against the loaded structure.

        Parameters
        ----------
        query
            Atom selection language text.

        Returns
        -------
        dict
            Payload containing the normalized query, selected atom ids and
            the bonds between selected atoms.

        Raises
        ------
        ModelError
            If no structure is loaded.
        SelectionParseError
            If the query is malformed.
        """

        selection = parse_selection(query)
        with self._lock:
            structure = self._require_structure()
        atom_ids, bonds = selection.select_atoms_bonds(structure.atoms(), self._bonds())
        logger.debug("Selection %s matched %d atoms", selection, len(atom_ids))
        return {
            "ok": True,
            "query": str(selection),
            "atom_ids": sorted(atom_ids),
            "bonds": [[i, j] for i, j in bonds],
            "count": len(atom_ids),
        }

    def get_secondary_structure(self) -> Dict[str, object]:
        """Classify protein residues and return labels plus a Ramachandran table.

        Raises
        ------
        ModelError
            If no structure is loaded.
        """

        with self._lock:
            structure = self._require_structure()
            cached = self._state.secondary_structure
        residues = structure.protein_residues()
        labels = cached if cached is not None else assign_secondary_structure(residues)
        with self._lock:
            if self._state.structure is structure:
                self._state.secondary_structure = labels
        return {
            "ok": True,
            "ss": ss_string(labels),
            "residue_ids": [residue.id for residue in residues],
            "table": table_payload(ramachandran_table(residues)),
        }

    def _update_playback(
        self, transition: Callable[[PlaybackState], PlaybackState]
    ) -> Dict[str, object]:
        with self._lock:
            self._require_structure()
            if self._state.trajectory is None:
                raise ModelError("not_loaded", "No trajectory loaded")
            self._state.playback = transition(self._state.playback)
            state = self._state.playback
        return {"ok": True, "playback": state.to_dict()}

    def start(self) -> Dict[str, object]:
        return self._update_playback(playback.start)

    def stop(self) -> Dict[str, object]:
        return self._update_playback(playback.stop)

    def loop(self) -> Dict[str, object]:
        return self._update_playback(playback.start_loop)

    def seek(self, frame_id: int) -> Dict[str, object]:
        """Jump to a frame.

        Raises
        ------
        ModelError
            If no trajectory is loaded or ``frame_id`` is not an integer.
        FrameLookupError
            If ``frame_id`` is out of range.
        """

        try:
            target = int(frame_id)
        except (TypeError, ValueError) as exc:
            raise ModelError("invalid_input", "frame_id must be an integer") from exc
        return self._update_playback(lambda state: playback.seek(state, target))

    def tick(self) -> Dict[str, object]:
        """Advance playback by one display tick.

        Returns
        -------
        dict
            Payload with the frame id drawn this tick and its positions, both
            None when nothing needs redrawing.
        """

        with self._lock:
            self._require_structure()
            trajectory = self._state.trajectory
            if trajectory is None:
                return {
                    "ok": True,
                    "frame_id": None,
                    "positions": None,
                    "playback": self._state.playback.to_dict(),
                }
            frame_id, state = playback.tick(self._state.playback)
            self._state.playback = state
        positions = None
        if frame_id is not None:
            positions = trajectory.frame(frame_id).positions.tolist()
        return {
            "ok": True,
            "frame_id": frame_id,
            "positions": positions,
            "playback": state.to_dict(),
        }

    def export_pdb(
        self, query: Optional[str] = None, frame_id: Optional[int] = None
    ) -> Dict[str, object]:
        """Render atoms as PDB text.

        Parameters
        ----------
        query
            Optional selection limiting the exported atoms.
        frame_id
            Optional trajectory frame whose coordinates are written.

        Returns
        -------
        dict
            Payload containing the PDB text and atom count.

        Raises
        ------
        ModelError
            If nothing is loaded.
        SelectionParseError
            If ``query`` is malformed.
        FrameLookupError
            If ``frame_id`` is out of range.
        """

        selection = parse_selection(query) if query is not None else None
        with self._lock:
            structure = self._require_structure()
            trajectory = self._state.trajectory
        positions = None
        if frame_id is not None:
            if trajectory is None:
                raise ModelError("not_loaded", "No trajectory loaded")
            try:
                target = int(frame_id)
            except (TypeError, ValueError) as exc:
                raise ModelError("invalid_input", "frame_id must be an integer") from exc
            positions = trajectory.frame(target).positions
        atoms = structure.atoms()
        if selection is not None:
            selected = selection.select_atoms(atoms)
            atoms = tuple(atom for atom in atoms if atom.id in selected)
        return {"ok": True, "pdb": write_pdb(atoms, positions), "count": len(atoms)}
