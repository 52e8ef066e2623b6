"""Secondary structure assignment from backbone dihedral angles."""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from mogura.config import HELIX_PHI, HELIX_PSI, STRAND_PHI, STRAND_PSI
from mogura.model.structure import Atom, Residue

logger = logging.getLogger(__name__)

RAMACHANDRAN_COLUMNS = ["residue_index", "chain", "resid", "resname", "phi", "psi", "ss"]


class SecondaryStructure(str, Enum):
    """Per-residue label. Values are the one-character codes used in strings."""

    HELIX = "H"
    STRAND = "E"
    LOOP = "-"


def _unit(vector: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(vector)
    if norm == 0.0:
        return np.zeros(3)
    return vector / norm


def dihedral(
    p1: Sequence[float], p2: Sequence[float], p3: Sequence[float], p4: Sequence[float]
) -> float:
    """Return the torsion angle p1-p2-p3-p4 in degrees, in (-180, 180].

    Degenerate (collinear) input yields 0.0.
    """

    a, b, c, d = (np.asarray(p, dtype=float) for p in (p1, p2, p3, p4))
    b1 = b - a
    b2 = c - b
    b3 = d - c
    m1 = _unit(np.cross(b1, b2))
    m2 = _unit(np.cross(b2, b3))
    x = float(np.dot(m1, m2))
    y = float(np.dot(np.cross(m1, m2), _unit(b2)))
    angle = math.degrees(math.atan2(y, x))
    if angle <= -180.0:
        angle += 360.0
    return angle


def _xyz(atom: Atom) -> Tuple[float, float, float]:
    return atom.xyz


def backbone_dihedrals(
    residues: Sequence[Residue],
) -> List[Tuple[Optional[float], Optional[float]]]:
    """Compute (phi, psi) for every residue.

    Parameters
    ----------
    residues
        Residues in chain order. Neighbours are taken by list position.

    Returns
    -------
    list
        One ``(phi, psi)`` pair per residue; an angle is None when the
        residue lacks N, CA or C, or the neighbour atom it needs is missing.
    """

    angles: List[Tuple[Optional[float], Optional[float]]] = []
    n_res = len(residues)
    for i, residue in enumerate(residues):
        n_atom = residue.find_atom("N")
        ca_atom = residue.find_atom("CA")
        c_atom = residue.find_atom("C")
        if n_atom is None or ca_atom is None or c_atom is None:
            angles.append((None, None))
            continue

        phi = None
        if i > 0:
            prev_c = residues[i - 1].find_atom("C")
            if prev_c is not None:
                phi = dihedral(_xyz(prev_c), _xyz(n_atom), _xyz(ca_atom), _xyz(c_atom))

        psi = None
        if i < n_res - 1:
            next_n = residues[i + 1].find_atom("N")
            if next_n is not None:
                psi = dihedral(_xyz(n_atom), _xyz(ca_atom), _xyz(c_atom), _xyz(next_n))

        angles.append((phi, psi))
    return angles


def _within(value: float, window: Tuple[float, float]) -> bool:
    return window[0] <= value <= window[1]


def classify(phi: Optional[float], psi: Optional[float]) -> SecondaryStructure:
    """Label one residue from its backbone torsions."""
    if phi is None or psi is None:
        return SecondaryStructure.LOOP
    if _within(phi, HELIX_PHI) and _within(psi, HELIX_PSI):
        return SecondaryStructure.HELIX
    if _within(phi, STRAND_PHI) and _within(psi, STRAND_PSI):
        return SecondaryStructure.STRAND
    return SecondaryStructure.LOOP


def assign_secondary_structure(residues: Sequence[Residue]) -> List[SecondaryStructure]:
    """Assign H, E or Loop to each residue independently.

    Parameters
    ----------
    residues
        Residues in chain order.

    Returns
    -------
    list
        One label per residue. Residues with incomplete backbone geometry are
        labelled Loop.
    """

    labels = [classify(phi, psi) for phi, psi in backbone_dihedrals(residues)]
    logger.debug(
        "Assigned secondary structure: residues=%d helix=%d strand=%d",
        len(labels),
        labels.count(SecondaryStructure.HELIX),
        labels.count(SecondaryStructure.STRAND),
    )
    return labels


def ss_string(labels: Sequence[SecondaryStructure]) -> str:
    return "".join(label.value for label in labels)


def ramachandran_table(residues: Sequence[Residue]) -> pd.DataFrame:
    """Tabulate phi/psi and the assigned label per residue.

    Parameters
    ----------
    residues
        Residues in chain order.

    Returns
    -------
    pandas.DataFrame
        Columns ``residue_index, chain, resid, resname, phi, psi, ss``;
        undefined angles are NaN.
    """

    if not residues:
        return pd.DataFrame({column: pd.Series(dtype=object) for column in RAMACHANDRAN_COLUMNS})
    angles = backbone_dihedrals(residues)
    df = pd.DataFrame(
        {
            "residue_index": [residue.id for residue in residues],
            "chain": [residue.chain_name for residue in residues],
            "resid": [residue.residue_id for residue in residues],
            "resname": [residue.residue_name for residue in residues],
            "phi": [np.nan if phi is None else phi for phi, _ in angles],
            "psi": [np.nan if psi is None else psi for _, psi in angles],
            "ss": [classify(phi, psi).value for phi, psi in angles],
        }
    )
    return df[RAMACHANDRAN_COLUMNS]


def table_payload(df: pd.DataFrame) -> Dict[str, object]:
    """Convert a table into a JSON-ready ``{"columns", "rows"}`` payload."""
    safe = df.astype(object).where(pd.notnull(df), None)
    columns = [str(col) for col in safe.columns]
    rows = [[_to_native(value) for value in row] for row in safe.itertuples(index=False)]
    return {"columns": columns, "rows": rows}


def _to_native(value: object) -> Optional[object]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, (np.integer, np.floating)):
        return value.item()
    if isinstance(value, np.bool_):
        return bool(value)
    return value
