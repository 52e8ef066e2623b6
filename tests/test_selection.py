import pytest

from mogura.config import MAX_SELECTION_DEPTH
from mogura.errors import SelectionParseError
from mogura.model.selection import (
    All,
    And,
    Backbone,
    Braket,
    Index,
    Ion,
    Name,
    Not,
    Or,
    Protein,
    ResId,
    ResName,
    Sidechain,
    Water,
    parse_selection,
)
from mogura.model.structure import Atom


def make_atom(atom_id, residue_name, atom_name, residue_id=1, serial=None):
    return Atom(
        id=atom_id,
        model_id=0,
        chain_name="A",
        residue_id=residue_id,
        residue_name=residue_name,
        atom_id=serial if serial is not None else atom_id + 1,
        atom_name=atom_name,
        element=atom_name[0],
        x=float(atom_id),
        y=0.0,
        z=0.0,
    )


def make_system():
    return [
        make_atom(0, "ALA", "N", residue_id=1),
        make_atom(1, "ALA", "CA", residue_id=1),
        make_atom(2, "ALA", "CB", residue_id=1),
        make_atom(3, "GLU", "N", residue_id=2),
        make_atom(4, "GLU", "HA", residue_id=2),
        make_atom(5, "HOH", "O", residue_id=3),
        make_atom(6, "TIP3", "OH2", residue_id=4),
        make_atom(7, "NA+", "NA", residue_id=5),
        make_atom(8, "CL-", "CL", residue_id=-2),
    ]


def test_parse_resname_list():
    selection = parse_selection("resname ALA GLU")
    assert selection == ResName(("ALA", "GLU"))
    assert selection.matches(make_atom(0, "ALA", "CA"))
    assert not selection.matches(make_atom(0, "GLY", "CA"))


def test_parse_and_binds_tighter_than_or():
    selection = parse_selection("(index 10 to 20) or protein and (resname ALA)")
    assert selection == Or(
        (
            Braket(Index(range(10, 21))),
            And((Protein(), Braket(ResName(("ALA",))))),
        )
    )


def test_parse_not():
    selection = parse_selection("not resname ALA")
    assert selection == Not(ResName(("ALA",)))
    assert not selection.matches(make_atom(0, "ALA", "CA"))
    assert selection.matches(make_atom(0, "GLY", "CA"))


def test_not_binds_tighter_than_and():
    assert parse_selection("not protein and water") == And((Not(Protein()), Water()))


def test_parse_keywords():
    assert parse_selection("all") == All()
    assert parse_selection("backbone or sidechain") == Or((Backbone(), Sidechain()))
    assert parse_selection("ion") == Ion()
    assert parse_selection("name CA CB") == Name(("CA", "CB"))


def test_whitespace_is_insignificant():
    assert parse_selection("  ( resname  ALA )and name CA ") == parse_selection(
        "(resname ALA) and name CA"
    )


def test_number_list_and_range():
    assert parse_selection("resid 1 3 5") == ResId((1, 3, 5))
    selection = parse_selection("resid 1 to 3")
    assert isinstance(selection.ids, range)
    assert list(selection.ids) == [1, 2, 3]


def test_wide_range_is_lazy():
    selection = parse_selection("index 0 to 1000000000000")
    assert isinstance(selection.ids, range)
    assert len(selection.ids) == 1000000000001
    assert selection.matches(make_atom(0, "ALA", "CA", serial=999999999999))


def test_negative_resid():
    selection = parse_selection("resid -2 to 0")
    atoms = make_system()
    assert selection.select_atoms(atoms) == {8}
    assert parse_selection("resid -2") == ResId((-2,))


def test_negative_index_is_rejected():
    with pytest.raises(SelectionParseError):
        parse_selection("index -1")


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "resname",
        "name and",
        "(protein",
        "protein)",
        "protein and",
        "or water",
        "foo",
        "resid ALA",
        "resid 1 to",
        "resid 1 to ALA",
        "protein water",
        "index 1 @",
        "not",
        "()",
        "resname to",
    ],
)
def test_invalid_queries_raise(text):
    with pytest.raises(SelectionParseError):
        parse_selection(text)


def test_parse_error_reports_position():
    with pytest.raises(SelectionParseError) as excinfo:
        parse_selection("protein and foo")
    assert excinfo.value.position == 12
    assert excinfo.value.code == "parse_error"


def test_non_string_raises():
    with pytest.raises(SelectionParseError):
        parse_selection(None)


def test_nesting_limit():
    ok = "(" * MAX_SELECTION_DEPTH + "all" + ")" * MAX_SELECTION_DEPTH
    parse_selection(ok)
    too_deep = "(" * (MAX_SELECTION_DEPTH + 1) + "all" + ")" * (MAX_SELECTION_DEPTH + 1)
    with pytest.raises(SelectionParseError):
        parse_selection(too_deep)


def test_long_not_chain_is_a_parse_error():
    with pytest.raises(SelectionParseError):
        parse_selection("not " * 10000 + "all")


@pytest.mark.parametrize(
    "text",
    [
        "resname ALA GLU",
        "(index 10 to 20) or protein and (resname ALA)",
        "not (water or ion) and name CA",
        "resid -3 to 4 or resid 7 8",
        "not not backbone",
        "((sidechain))",
    ],
)
def test_str_round_trip(text):
    selection = parse_selection(text)
    assert parse_selection(str(selection)) == selection


def test_parse_is_deterministic():
    text = "protein and not (resname GLY or name H)"
    assert parse_selection(text) == parse_selection(text)


def test_select_atoms_flags():
    atoms = make_system()
    assert parse_selection("protein").select_atoms(atoms) == {0, 1, 2, 3, 4}
    assert parse_selection("backbone").select_atoms(atoms) == {0, 1, 3, 4}
    assert parse_selection("sidechain").select_atoms(atoms) == {2}
    assert parse_selection("water").select_atoms(atoms) == {5, 6}
    assert parse_selection("ion").select_atoms(atoms) == {7, 8}
    assert parse_selection("all").select_atoms(atoms) == set(range(9))
    assert parse_selection("all").select_atoms([]) == set()


def test_index_matches_file_serial():
    atoms = [make_atom(0, "ALA", "N", serial=10), make_atom(1, "ALA", "CA", serial=11)]
    assert parse_selection("index 10").select_atoms(atoms) == {0}
    assert parse_selection("index 0").select_atoms(atoms) == set()


def test_select_atoms_bonds_keeps_internal_bonds():
    atoms = make_system()
    bonds = [(1, 0), (2, 1), (3, 2), (4, 3)]
    selection = parse_selection("name N CA")
    atom_ids, selected_bonds = selection.select_atoms_bonds(atoms, bonds)
    assert atom_ids == {0, 1, 3}
    assert selected_bonds == [(1, 0)]
    for i, j in selected_bonds:
        assert i in atom_ids and j in atom_ids
