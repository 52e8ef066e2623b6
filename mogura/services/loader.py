"""Structure loading utilities."""

from __future__ import annotations

import io
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import MDAnalysis as mda
import requests
from MDAnalysis.exceptions import NoDataError
from MDAnalysis.lib.util import NamedStream

from mogura.config import (
    CONTENT_EXTENSIONS,
    DOWNLOAD_TIMEOUT,
    GUESSABLE_ELEMENTS,
    RCSB_DOWNLOAD_URL,
    STRUCTURE_EXTENSIONS,
)
from mogura.errors import LoadError
from mogura.model.structure import Atom, StructureData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StructureLoadResult:
    """Result of loading a structure.

    Attributes
    ----------
    structure
        Loaded atoms and residues.
    source_path
        Path the structure was read from, or None for in-memory content.
    extension
        Format extension used to read it.
    warnings
        Non-fatal issues found while reading.
    timings
        Timing breakdown for the load pipeline.
    """

    structure: StructureData
    source_path: Optional[str]
    extension: str
    warnings: List[str]
    timings: Dict[str, float]

    @property
    def natoms(self) -> int:
        return len(self.structure.atoms())

    @property
    def nresidues(self) -> int:
        return len(self.structure.residues())


def guess_element(atom_name: str) -> Optional[str]:
    """Guess an element symbol from the first letter of an atom name."""
    name = (atom_name or "").strip().lstrip("0123456789")
    if not name:
        return None
    first = name[0].upper()
    if first in GUESSABLE_ELEMENTS:
        return first
    return None


def _safe_attr(atoms, attr: str) -> Optional[List[object]]:
    try:
        values = getattr(atoms, attr)
    except (AttributeError, NoDataError):
        return None
    return list(values)


def _file_extension(path: str) -> str:
    _, ext = os.path.splitext(path)
    if not ext:
        raise LoadError(
            "missing_extension", f"structure_file: {path} has no extension.", path
        )
    return ext[1:].lower()


def _model_positions(universe, all_models: bool) -> List[Tuple[int, object]]:
    trajectory = universe.trajectory
    if not all_models or len(trajectory) < 2:
        return [(1, universe.atoms.positions)]
    models = [(ts.frame + 1, ts.positions.copy()) for ts in trajectory]
    trajectory.rewind()
    return models


def universe_to_structure(
    universe, warnings: Optional[List[str]] = None, all_models: bool = False
) -> StructureData:
    """Copy MDAnalysis atoms into a :class:`StructureData`.

    Parameters
    ----------
    universe
        Loaded MDAnalysis Universe.
    warnings
        Optional list that receives notes about missing attributes.
    all_models
        When True, every frame of a multi-model file becomes its own model
        and its atoms are appended in model order, tagged with the model
        serial (1-based).

    Returns
    -------
    StructureData
        Atoms with dense ids and residues grouped from contiguous runs.
    """

    atoms = universe.atoms
    natoms = len(atoms)
    names = _safe_attr(atoms, "names") or [""] * natoms
    resids = _safe_attr(atoms, "resids") or [0] * natoms
    resnames = _safe_attr(atoms, "resnames") or [""] * natoms
    serials = _safe_attr(atoms, "ids")
    chains = _safe_attr(atoms, "chainIDs")
    elements = _safe_attr(atoms, "elements")

    if warnings is not None:
        if chains is None:
            warnings.append("Chain identifiers not available")
        if elements is None:
            warnings.append("Elements not available; guessed from atom names")

    element_cache: Dict[str, Optional[str]] = {}
    records: List[Atom] = []
    for model_id, positions in _model_positions(universe, all_models):
        for idx in range(natoms):
            name = str(names[idx]).strip()
            element = str(elements[idx]).strip().title() if elements is not None else ""
            if not element:
                if name not in element_cache:
                    element_cache[name] = guess_element(name)
                element = element_cache[name]
            chain = str(chains[idx]).strip() if chains is not None else ""
            records.append(
                Atom(
                    id=len(records),
                    model_id=model_id,
                    chain_name=chain,
                    residue_id=int(resids[idx]),
                    residue_name=str(resnames[idx]).strip(),
                    atom_id=int(serials[idx]) if serials is not None else idx + 1,
                    atom_name=name,
                    element=element,
                    x=float(positions[idx][0]),
                    y=float(positions[idx][1]),
                    z=float(positions[idx][2]),
                )
            )
    return StructureData(records)


class StructureReader(ABC):
    """Reads one structure file format into a :class:`StructureData`."""

    extension: str = ""
    mda_format: str = ""
    multi_model: bool = False

    @abstractmethod
    def open_universe(self, source):
        """Return an MDAnalysis Universe for a path or named stream."""

    def read(self, source, source_path: Optional[str] = None) -> StructureLoadResult:
        """Read ``source`` and convert it.

        Raises
        ------
        LoadError
            If the format parser rejects the input.
        """

        start = time.perf_counter()
        try:
            universe = self.open_universe(source)
        except Exception as exc:
            logger.exception("MDAnalysis failed to read %s structure", self.extension)
            raise LoadError(
                "load_failed", f"Failed to read {self.extension} structure", str(exc)
            ) from exc
        universe_time = time.perf_counter() - start

        build_start = time.perf_counter()
        warnings: List[str] = []
        structure = universe_to_structure(universe, warnings, all_models=self.multi_model)
        build_time = time.perf_counter() - build_start
        if warnings:
            logger.debug("Structure warnings: %s", warnings)
        logger.debug(
            "Structure loaded: atoms=%d residues=%d",
            len(structure),
            len(structure.residues()),
        )
        return StructureLoadResult(
            structure=structure,
            source_path=source_path,
            extension=self.extension,
            warnings=warnings,
            timings={
                "universe": universe_time,
                "build": build_time,
                "total": time.perf_counter() - start,
            },
        )


class PdbReader(StructureReader):
    extension = "pdb"
    mda_format = "PDB"
    multi_model = True

    def open_universe(self, source):
        return mda.Universe(source, topology_format=self.mda_format, format=self.mda_format)


class GroReader(StructureReader):
    """GRO reader; MDAnalysis converts nanometres to angstrom on read."""

    extension = "gro"
    mda_format = "GRO"

    def open_universe(self, source):
        return mda.Universe(source, topology_format=self.mda_format, format=self.mda_format)


_READERS: Dict[str, StructureReader] = {
    reader.extension: reader for reader in (PdbReader(), GroReader())
}


def get_reader(extension: str) -> StructureReader:
    """Return the reader registered for ``extension``.

    Raises
    ------
    LoadError
        If the extension is not supported.
    """

    ext = (extension or "").lower().lstrip(".")
    if ext not in STRUCTURE_EXTENSIONS or ext not in _READERS:
        raise LoadError(
            "unsupported_extension", "This extension is not supported.", extension
        )
    return _READERS[ext]


def structure_loader(path: str) -> StructureLoadResult:
    """Load a structure file, choosing the reader by extension.

    Parameters
    ----------
    path
        Path to a ``.pdb`` or ``.gro`` file.

    Returns
    -------
    StructureLoadResult
        Loaded structure and load metadata.

    Raises
    ------
    LoadError
        If the extension is missing or unsupported, the file does not exist,
        or parsing fails.
    """

    if not path:
        raise LoadError("invalid_input", "structure path is required")
    reader = get_reader(_file_extension(path))
    if not os.path.exists(path):
        raise LoadError("file_not_found", "structure file not found", path)
    logger.debug("Loading structure %s", path)
    return reader.read(path, source_path=path)


def structure_loader_from_content(content: str, extension: str) -> StructureLoadResult:
    """Load a structure from in-memory text.

    Parameters
    ----------
    content
        File content.
    extension
        Format tag such as ``"pdb"``.

    Returns
    -------
    StructureLoadResult
        Loaded structure with no source path.

    Raises
    ------
    LoadError
        If the format is unsupported for content or parsing fails.
    """

    ext = (extension or "").lower().lstrip(".")
    if ext not in CONTENT_EXTENSIONS:
        raise LoadError(
            "unsupported_extension", "This extension is not supported.", extension
        )
    reader = get_reader(ext)
    stream = NamedStream(io.StringIO(content), f"structure.{ext}")
    return reader.read(stream)


def fetch_pdb(pdb_id: str, timeout: float = DOWNLOAD_TIMEOUT) -> StructureLoadResult:
    """Download a PDB entry from RCSB and load it.

    Raises
    ------
    LoadError
        If the id is malformed, the request fails, or parsing fails.
    """

    pdb_id = (pdb_id or "").strip()
    if not pdb_id or not pdb_id.isalnum():
        raise LoadError("invalid_input", "PDB id must be alphanumeric", pdb_id)
    url = RCSB_DOWNLOAD_URL.format(pdb_id=pdb_id.upper())
    logger.debug("Downloading %s", url)
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise LoadError(
            "download_failed", f"Failed to download PDB file for {pdb_id}", str(exc)
        ) from exc
    if response.status_code != 200:
        raise LoadError(
            "download_failed",
            f"Failed to download PDB file for {pdb_id}",
            {"status_code": response.status_code},
        )
    return structure_loader_from_content(response.text, "pdb")
