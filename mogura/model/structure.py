"""Atom/residue data model and geometric bond inference."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from mogura.config import (
    BACKBONE_ATOM_NAMES,
    BOND_CUTOFF,
    ION_RESNAME_MARKERS,
    PROTEIN_RESNAMES,
    WATER_RESNAME_MARKER,
    WATER_RESNAMES,
)

logger = logging.getLogger(__name__)

Bond = Tuple[int, int]


def is_protein_resname(residue_name: str) -> bool:
    return residue_name in PROTEIN_RESNAMES


def is_water_resname(residue_name: str) -> bool:
    return residue_name in WATER_RESNAMES or WATER_RESNAME_MARKER in residue_name


def is_ion_resname(residue_name: str) -> bool:
    return any(marker in residue_name for marker in ION_RESNAME_MARKERS)


@dataclass(frozen=True)
class Atom:
    """One atom of a loaded structure.

    Attributes
    ----------
    id
        Dense 0-based index, equal to the atom's position in the structure.
    model_id
        Model number the atom belongs to.
    chain_name
        Chain identifier ("" when the file has none).
    residue_id
        Residue sequence number from the file (may be negative).
    residue_name
        Residue name.
    atom_id
        Atom serial number from the file. Never used for indexing.
    atom_name
        Atom name.
    element
        Element symbol, if known.
    x, y, z
        Reference coordinates in angstrom.
    """

    id: int
    model_id: int
    chain_name: str
    residue_id: int
    residue_name: str
    atom_id: int
    atom_name: str
    element: Optional[str]
    x: float
    y: float
    z: float

    @property
    def xyz(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @property
    def residue_key(self) -> Tuple[int, str, int, str]:
        return (self.model_id, self.chain_name, self.residue_id, self.residue_name)

    def is_protein(self) -> bool:
        return is_protein_resname(self.residue_name)

    def is_backbone(self) -> bool:
        return self.is_protein() and self.atom_name in BACKBONE_ATOM_NAMES

    def is_sidechain(self) -> bool:
        return self.is_protein() and self.atom_name not in BACKBONE_ATOM_NAMES

    def is_water(self) -> bool:
        return is_water_resname(self.residue_name)

    def is_ion(self) -> bool:
        return is_ion_resname(self.residue_name)


@dataclass(frozen=True)
class Residue:
    """A contiguous run of atoms sharing one residue key.

    Attributes
    ----------
    id
        Dense 0-based residue index.
    model_id
        Model number.
    chain_name
        Chain identifier.
    residue_id
        Residue sequence number from the file.
    residue_name
        Residue name.
    atoms
        Member atoms in file order.
    """

    id: int
    model_id: int
    chain_name: str
    residue_id: int
    residue_name: str
    atoms: Tuple[Atom, ...]

    def find_atom(self, atom_name: str) -> Optional[Atom]:
        """Return the first member atom with the given name, or None."""
        for atom in self.atoms:
            if atom.atom_name == atom_name:
                return atom
        return None

    def is_protein(self) -> bool:
        return is_protein_resname(self.residue_name)


def build_residues(atoms: Sequence[Atom]) -> List[Residue]:
    """Group consecutive atoms with an identical residue key.

    Parameters
    ----------
    atoms
        Atoms in file order. Atoms of one residue must be contiguous; a key
        that reappears after a different key starts a new residue.

    Returns
    -------
    list
        Residues in file order with dense ids.
    """

    residues: List[Residue] = []
    run: List[Atom] = []

    def close_run() -> None:
        first = run[0]
        residues.append(
            Residue(
                id=len(residues),
                model_id=first.model_id,
                chain_name=first.chain_name,
                residue_id=first.residue_id,
                residue_name=first.residue_name,
                atoms=tuple(run),
            )
        )

    for atom in atoms:
        if run and atom.residue_key != run[-1].residue_key:
            close_run()
            run = []
        run.append(atom)
    if run:
        close_run()
    return residues


def compute_bonds(positions: np.ndarray, cutoff: float = BOND_CUTOFF) -> List[Bond]:
    """Find every atom pair within ``cutoff`` of each other.

    Each pair ``(i, j)`` is reported once with ``i > j``, ordered by ``i``
    then ``j``. Pair enumeration is quadratic in the atom count.

    Parameters
    ----------
    positions
        Array of shape (n, 3) in angstrom.
    cutoff
        Inclusive distance threshold in angstrom.

    Returns
    -------
    list
        Bonded index pairs.
    """

    coords = np.asarray(positions, dtype=float).reshape(-1, 3)
    cutoff_sq = cutoff * cutoff
    bonds: List[Bond] = []
    for i in range(1, len(coords)):
        delta = coords[:i] - coords[i]
        dist_sq = np.einsum("ij,ij->i", delta, delta)
        for j in np.nonzero(dist_sq <= cutoff_sq)[0]:
            bonds.append((i, int(j)))
    return bonds


class StructureData:
    """Canonical snapshot of one loaded structure.

    Attributes
    ----------
    _atoms
        Atoms in file order; ``atoms[a.id] is a`` for every atom.
    _residues
        Residues built from contiguous runs of atoms.
    """

    def __init__(
        self, atoms: Iterable[Atom], residues: Optional[Sequence[Residue]] = None
    ) -> None:
        """Build the snapshot.

        Parameters
        ----------
        atoms
            Atoms with dense 0-based ids in order.
        residues
            Optional prebuilt residues; grouped from ``atoms`` when omitted.

        Raises
        ------
        ValueError
            If atom ids are not dense and in order.
        """

        self._atoms: Tuple[Atom, ...] = tuple(atoms)
        for index, atom in enumerate(self._atoms):
            if atom.id != index:
                raise ValueError(f"Atom id {atom.id} found at position {index}")
        if residues is None:
            residues = build_residues(self._atoms)
        self._residues: Tuple[Residue, ...] = tuple(residues)
        self._positions = np.array(
            [atom.xyz for atom in self._atoms], dtype=float
        ).reshape(-1, 3)
        self._positions.setflags(write=False)

    def __len__(self) -> int:
        return len(self._atoms)

    def atoms(self) -> Tuple[Atom, ...]:
        return self._atoms

    def residues(self) -> Tuple[Residue, ...]:
        return self._residues

    def positions(self) -> np.ndarray:
        """Return the read-only (n, 3) reference coordinate array."""
        return self._positions

    def center(self) -> Tuple[float, float, float]:
        """Return the mean atom position, or the origin for an empty structure."""
        if len(self._atoms) == 0:
            return (0.0, 0.0, 0.0)
        center = self._positions.mean(axis=0)
        return (float(center[0]), float(center[1]), float(center[2]))

    def bonds_indirected(self) -> List[Bond]:
        """Return each inferred bond once as ``(i, j)`` with ``i > j``."""
        bonds = compute_bonds(self._positions)
        logger.debug("Inferred %d bonds for %d atoms", len(bonds), len(self._atoms))
        return bonds

    def bonds_directed(self) -> List[Bond]:
        """Return each inferred bond in both directions."""
        bonds: List[Bond] = []
        for i, j in compute_bonds(self._positions):
            bonds.append((i, j))
            bonds.append((j, i))
        return bonds

    def protein(self) -> List[Atom]:
        return [atom for atom in self._atoms if atom.is_protein()]

    def backbone(self) -> List[Atom]:
        return [atom for atom in self._atoms if atom.is_backbone()]

    def sidechain(self) -> List[Atom]:
        return [atom for atom in self._atoms if atom.is_sidechain()]

    def water(self) -> List[Atom]:
        return [atom for atom in self._atoms if atom.is_water()]

    def ion(self) -> List[Atom]:
        return [atom for atom in self._atoms if atom.is_ion()]

    def protein_residues(self) -> List[Residue]:
        return [residue for residue in self._residues if residue.is_protein()]
