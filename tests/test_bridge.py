import pytest

from mogura.bridge import Api
from mogura.model import Model
from mogura.worker import Worker

PDB_TEXT = (
    "ATOM      1  N   GLY A   1       0.000   0.000   0.000  1.00  0.00           N\n"
    "ATOM      2  CA  GLY A   1       1.458   0.000   0.000  1.00  0.00           C\n"
    "END\n"
)


@pytest.fixture
def api():
    worker = Worker(max_workers=1)
    yield Api(Model(cpu_submit=worker.submit_cpu), worker)
    worker.shutdown()


def test_load_content_and_select(api):
    loaded = api.load_structure({"content": PDB_TEXT, "extension": "pdb"})
    assert loaded["ok"] is True
    assert loaded["natoms"] == 2
    selected = api.select_atoms({"query": "name CA"})
    assert selected["ok"] is True
    assert selected["atom_ids"] == [1]
    assert api.get_bonds()["bonds"] == [[1, 0]]


def test_errors_become_payloads(api):
    result = api.get_summary()
    assert result == {
        "ok": False,
        "error": {"code": "not_loaded", "message": "No structure loaded", "details": None},
    }
    api.load_structure({"content": PDB_TEXT})
    bad = api.select_atoms({"query": "resname"})
    assert bad["ok"] is False
    assert bad["error"]["code"] == "parse_error"
    assert api.load_structure({"path": "missing.pdb"})["error"]["code"] == "file_not_found"


def test_invalid_payloads(api):
    assert api.load_structure("x")["error"]["code"] == "invalid_input"
    assert api.load_structure({})["error"]["code"] == "invalid_input"
    assert api.select_atoms({})["error"]["code"] == "invalid_input"
    assert api.playback({"command": "rewind"})["error"]["code"] == "invalid_input"
    assert api.playback({"command": "seek"})["error"]["code"] == "invalid_input"
    assert api.load_trajectory({})["error"]["code"] == "invalid_input"


def test_playback_without_trajectory(api):
    api.load_structure({"content": PDB_TEXT})
    assert api.playback({"command": "start"})["error"]["code"] == "not_loaded"
    assert api.tick()["frame_id"] is None


def test_export_pdb_to_file(api, tmp_path):
    api.load_structure({"content": PDB_TEXT})
    out_path = tmp_path / "export.pdb"
    result = api.export_pdb({"query": "all", "path": str(out_path)})
    assert result == {"ok": True, "path": str(out_path), "count": 2}
    assert out_path.read_text().endswith("END\n")


def test_log_client_error(api):
    assert api.log_client_error({"message": "boom"}) == {"ok": True}
    assert api.log_client_error({})["ok"] is False
