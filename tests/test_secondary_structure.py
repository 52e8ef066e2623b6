import math

import numpy as np
import pytest

from mogura.model.secondary_structure import (
    RAMACHANDRAN_COLUMNS,
    SecondaryStructure,
    assign_secondary_structure,
    backbone_dihedrals,
    classify,
    dihedral,
    ramachandran_table,
    ss_string,
    table_payload,
)
from mogura.model.structure import Atom, StructureData

H = SecondaryStructure.HELIX
E = SecondaryStructure.STRAND
L = SecondaryStructure.LOOP


def _unit(vector):
    return vector / np.linalg.norm(vector)


def _place(a, b, c, bond, angle, torsion):
    """Place d so that |cd| = bond, angle(b, c, d) = angle, dihedral(a, b, c, d) = torsion."""
    bc = _unit(c - b)
    n = _unit(np.cross(b - a, bc))
    m = np.cross(n, bc)
    angle = math.radians(angle)
    torsion = math.radians(torsion)
    return (
        c
        - bond * math.cos(angle) * bc
        + bond * math.sin(angle) * math.cos(torsion) * m
        + bond * math.sin(angle) * math.sin(torsion) * n
    )


def _backbone(angles):
    """Build N/CA/C coordinates for residues with the given (phi, psi) pairs."""
    n_atom = np.array([0.0, 0.0, 0.0])
    ca_atom = np.array([1.458, 0.0, 0.0])
    theta = math.radians(111.0)
    c_atom = ca_atom + 1.525 * np.array([-math.cos(theta), math.sin(theta), 0.0])
    coords = [(n_atom, ca_atom, c_atom)]
    for index in range(1, len(angles)):
        psi = angles[index - 1][1]
        phi = angles[index][0]
        next_n = _place(n_atom, ca_atom, c_atom, 1.329, 116.0, psi)
        next_ca = _place(ca_atom, c_atom, next_n, 1.458, 122.0, 180.0)
        next_c = _place(c_atom, next_n, next_ca, 1.525, 111.0, phi)
        n_atom, ca_atom, c_atom = next_n, next_ca, next_c
        coords.append((n_atom, ca_atom, c_atom))
    return coords


def make_chain(angles, drop=None):
    atoms = []
    for resid, triple in enumerate(_backbone(angles), start=1):
        for name, xyz in zip(("N", "CA", "C"), triple):
            if drop == (resid, name):
                continue
            atoms.append(
                Atom(
                    id=len(atoms),
                    model_id=0,
                    chain_name="A",
                    residue_id=resid,
                    residue_name="ALA",
                    atom_id=len(atoms) + 1,
                    atom_name=name,
                    element=name[0],
                    x=float(xyz[0]),
                    y=float(xyz[1]),
                    z=float(xyz[2]),
                )
            )
    return StructureData(atoms).residues()


def test_dihedral_reference_values():
    assert dihedral((1, 0, 0), (0, 0, 0), (0, 1, 0), (1, 1, 0)) == pytest.approx(0.0)
    assert dihedral((1, 0, 0), (0, 0, 0), (0, 1, 0), (-1, 1, 0)) == pytest.approx(180.0)
    assert dihedral((1, 0, 0), (0, 0, 0), (0, 1, 0), (0, 1, -1)) == pytest.approx(90.0)
    assert dihedral((1, 0, 0), (0, 0, 0), (0, 1, 0), (0, 1, 1)) == pytest.approx(-90.0)


def test_dihedral_degenerate_is_zero():
    assert dihedral((0, 0, 0), (1, 0, 0), (2, 0, 0), (3, 0, 0)) == 0.0


def test_backbone_dihedrals_recover_built_angles():
    residues = make_chain([(0.0, -45.0), (-60.0, -45.0), (-120.0, 130.0), (-60.0, 0.0)])
    angles = backbone_dihedrals(residues)
    assert angles[0][0] is None
    assert angles[-1][1] is None
    assert angles[1][0] == pytest.approx(-60.0, abs=1e-6)
    assert angles[1][1] == pytest.approx(-45.0, abs=1e-6)
    assert angles[2][0] == pytest.approx(-120.0, abs=1e-6)
    assert angles[2][1] == pytest.approx(130.0, abs=1e-6)


def test_helix_residue():
    residues = make_chain([(0.0, -45.0), (-60.0, -45.0), (-60.0, 0.0)])
    assert assign_secondary_structure(residues) == [L, H, L]


def test_psi_just_outside_helix_window_is_loop():
    residues = make_chain([(0.0, -45.0), (-60.0, -16.0), (-60.0, 0.0)])
    assert assign_secondary_structure(residues) == [L, L, L]


def test_strand_residue():
    residues = make_chain([(0.0, 130.0), (-120.0, 130.0), (-120.0, 0.0)])
    assert assign_secondary_structure(residues)[1] is E


def test_missing_backbone_atom_is_loop():
    residues = make_chain(
        [(0.0, -45.0), (-60.0, -45.0), (-60.0, -45.0), (-60.0, 0.0)], drop=(2, "CA")
    )
    labels = assign_secondary_structure(residues)
    assert labels[1] is L
    assert len(labels) == 4


def test_classify_windows_are_inclusive():
    assert classify(-90.0, -77.0) is H
    assert classify(-30.0, -17.0) is H
    assert classify(-150.0, 180.0) is E
    assert classify(-90.0, 90.0) is E
    assert classify(60.0, 60.0) is L
    assert classify(None, -45.0) is L
    assert classify(-60.0, None) is L


def test_ss_string():
    assert ss_string([L, H, H, E, L]) == "-HHE-"
    assert ss_string([]) == ""


def test_ramachandran_table():
    residues = make_chain([(0.0, -45.0), (-60.0, -45.0), (-60.0, 0.0)])
    df = ramachandran_table(residues)
    assert list(df.columns) == RAMACHANDRAN_COLUMNS
    assert len(df) == 3
    assert math.isnan(df.loc[0, "phi"])
    assert df.loc[1, "ss"] == "H"
    payload = table_payload(df)
    assert payload["columns"] == RAMACHANDRAN_COLUMNS
    assert payload["rows"][0][4] is None
    assert payload["rows"][1][3] == "ALA"
    assert isinstance(payload["rows"][1][2], int)


def test_ramachandran_table_empty():
    df = ramachandran_table([])
    assert list(df.columns) == RAMACHANDRAN_COLUMNS
    assert table_payload(df) == {"columns": RAMACHANDRAN_COLUMNS, "rows": []}
