import numpy as np
import pytest

from mogura.model.structure import (
    Atom,
    StructureData,
    build_residues,
    compute_bonds,
)


def make_atom(atom_id, xyz, residue_name="ALA", atom_name="CA", residue_id=1, chain="A"):
    x, y, z = xyz
    return Atom(
        id=atom_id,
        model_id=0,
        chain_name=chain,
        residue_id=residue_id,
        residue_name=residue_name,
        atom_id=atom_id + 1,
        atom_name=atom_name,
        element=atom_name[0],
        x=x,
        y=y,
        z=z,
    )


def make_structure(coords, **kwargs):
    return StructureData(make_atom(i, xyz, **kwargs) for i, xyz in enumerate(coords))


def test_bond_within_cutoff():
    structure = make_structure([(0.0, 0.0, 0.0), (1.5, 0.0, 0.0)])
    assert structure.bonds_indirected() == [(1, 0)]


def test_no_bond_beyond_cutoff():
    structure = make_structure([(0.0, 0.0, 0.0), (1.7, 0.0, 0.0)])
    assert structure.bonds_indirected() == []


def test_bonds_are_ordered_and_unique():
    coords = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (2.0, 0.0, 0.0), (2.0, 1.0, 0.0)]
    bonds = compute_bonds(np.array(coords))
    assert bonds == [(1, 0), (2, 1), (3, 1), (3, 2)]
    assert all(i > j for i, j in bonds)


def test_bonds_directed_is_symmetric_closure():
    coords = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (2.0, 0.0, 0.0), (2.0, 1.2, 0.0)]
    structure = make_structure(coords)
    indirected = structure.bonds_indirected()
    directed = structure.bonds_directed()
    assert len(directed) == 2 * len(indirected)
    assert set(directed) == set(indirected) | {(j, i) for i, j in indirected}
    for i, j in directed:
        assert (j, i) in directed


def test_center_single_atom():
    structure = make_structure([(1.0, -2.0, 3.5)])
    assert structure.center() == pytest.approx((1.0, -2.0, 3.5))


def test_center_empty_structure():
    structure = StructureData([])
    assert structure.center() == (0.0, 0.0, 0.0)
    assert structure.bonds_indirected() == []
    assert structure.residues() == ()


def test_center_translation_equivariant():
    coords = [(0.0, 0.0, 0.0), (1.0, 2.0, 3.0), (-4.0, 0.5, 2.0)]
    shift = np.array([10.0, -3.0, 0.25])
    moved = [tuple(np.array(xyz) + shift) for xyz in coords]
    base = make_structure(coords)
    translated = make_structure(moved)
    assert translated.center() == pytest.approx(tuple(np.array(base.center()) + shift))
    assert translated.bonds_indirected() == base.bonds_indirected()


def test_atom_ids_must_be_dense():
    atoms = [make_atom(0, (0.0, 0.0, 0.0)), make_atom(2, (1.0, 0.0, 0.0))]
    with pytest.raises(ValueError):
        StructureData(atoms)


def test_positions_are_read_only():
    structure = make_structure([(0.0, 0.0, 0.0)])
    with pytest.raises(ValueError):
        structure.positions()[0, 0] = 1.0


def test_residues_group_contiguous_runs():
    atoms = [
        make_atom(0, (0.0, 0.0, 0.0), residue_name="ALA", residue_id=1, atom_name="N"),
        make_atom(1, (1.0, 0.0, 0.0), residue_name="ALA", residue_id=1, atom_name="CA"),
        make_atom(2, (2.0, 0.0, 0.0), residue_name="GLY", residue_id=2, atom_name="N"),
        make_atom(3, (3.0, 0.0, 0.0), residue_name="ALA", residue_id=1, atom_name="C"),
    ]
    residues = build_residues(atoms)
    assert [residue.id for residue in residues] == [0, 1, 2]
    assert [len(residue.atoms) for residue in residues] == [2, 1, 1]
    assert residues[0].find_atom("CA") is atoms[1]
    assert residues[0].find_atom("CB") is None


def test_residue_split_by_chain():
    atoms = [
        make_atom(0, (0.0, 0.0, 0.0), chain="A"),
        make_atom(1, (5.0, 0.0, 0.0), chain="B"),
    ]
    assert len(StructureData(atoms).residues()) == 2


def test_category_predicates():
    atoms = [
        make_atom(0, (0.0, 0.0, 0.0), residue_name="HIP", atom_name="N"),
        make_atom(1, (0.0, 0.0, 0.0), residue_name="HIP", atom_name="HA"),
        make_atom(2, (0.0, 0.0, 0.0), residue_name="HIP", atom_name="CB"),
        make_atom(3, (0.0, 0.0, 0.0), residue_name="WAT", atom_name="O"),
        make_atom(4, (0.0, 0.0, 0.0), residue_name="TIP3", atom_name="OH2"),
        make_atom(5, (0.0, 0.0, 0.0), residue_name="K+", atom_name="K"),
        make_atom(6, (0.0, 0.0, 0.0), residue_name="LIG", atom_name="CA"),
    ]
    structure = StructureData(atoms)
    assert [atom.id for atom in structure.protein()] == [0, 1, 2]
    assert [atom.id for atom in structure.backbone()] == [0, 1]
    assert [atom.id for atom in structure.sidechain()] == [2]
    assert [atom.id for atom in structure.water()] == [3, 4]
    assert [atom.id for atom in structure.ion()] == [5]
    assert not atoms[6].is_backbone()
    assert not atoms[6].is_sidechain()

