"""PDB formatting utilities."""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from mogura.errors import PdbWriterError
from mogura.model.structure import Atom


def _format_atom_name(name: str, element: Optional[str]) -> str:
    name = (name or "").strip()
    if len(name) >= 4:
        return name[:4]
    # One-letter elements start in column 14.
    if element is None or len(element.strip()) < 2:
        return f" {name}".ljust(4)
    return name.ljust(4)


def _format_resname(resname: str) -> str:
    resname = (resname or "").strip()
    if len(resname) > 3:
        return resname[:3]
    return resname.rjust(3)


def _format_element(element: Optional[str]) -> str:
    element = (element or "").strip()
    if not element:
        return "  "
    if len(element) == 1:
        return f" {element.upper()}"
    return element[0].upper() + element[1].lower()


def write_pdb(atoms: Sequence[Atom], positions: Optional[np.ndarray] = None) -> str:
    """Build a PDB text block for a sequence of atoms.

    Parameters
    ----------
    atoms
        Atoms to write, in output order.
    positions
        Optional per-structure coordinate array (for example a trajectory
        frame) indexed by ``atom.id``. Reference coordinates are used when
        omitted.

    Returns
    -------
    str
        PDB text ending in a newline.

    Raises
    ------
    PdbWriterError
        If an atom cannot be formatted or has no row in ``positions``.
    """

    lines: List[str] = []
    for atom in atoms:
        try:
            serial = int(atom.atom_id) % 100000
            name = _format_atom_name(atom.atom_name, atom.element)
            resname = _format_resname(atom.residue_name)
            chain = (atom.chain_name or " ")[:1]
            resid = int(atom.residue_id)
            if positions is None:
                x, y, z = atom.xyz
            else:
                x, y, z = (float(value) for value in positions[atom.id])
            element = _format_element(atom.element)
        except (AttributeError, IndexError, TypeError, ValueError) as exc:
            raise PdbWriterError("pdb_format_failed", "Invalid atom record", str(exc)) from exc

        occ = 1.00
        temp = 0.00
        line = (
            f"ATOM  "
            f"{serial:5d} "
            f"{name}"
            f" "
            f"{resname} "
            f"{chain}"
            f"{resid:4d}"
            f"    "
            f"{x:8.3f}{y:8.3f}{z:8.3f}"
            f"{occ:6.2f}{temp:6.2f}"
            f"          "
            f"{element:>2}"
        )
        lines.append(line)
    lines.append("END")
    return "\n".join(lines) + "\n"
