"""Application constants."""

from __future__ import annotations

APP_NAME = "mogura"

BOND_CUTOFF = 1.6  # angstrom

PROTEIN_RESNAMES = frozenset(
    {
        "ALA",
        "ARG",
        "ASN",
        "ASP",
        "CYS",
        "GLN",
        "GLU",
        "GLY",
        "HIS",
        "ILE",
        "LEU",
        "LYS",
        "MET",
        "PHE",
        "PRO",
        "SER",
        "THR",
        "TRP",
        "TYR",
        "VAL",
        "CYX",
        "HID",
        "HIE",
        "HIP",
    }
)
BACKBONE_ATOM_NAMES = frozenset({"N", "CA", "C", "O", "HA"})
WATER_RESNAMES = frozenset({"HOH", "WAT"})
WATER_RESNAME_MARKER = "TIP"
ION_RESNAME_MARKERS = ("+", "-")

# Element guess for atoms whose file carries no element column.
GUESSABLE_ELEMENTS = frozenset({"H", "C", "N", "O", "S"})

STRUCTURE_EXTENSIONS = ("pdb", "gro")
CONTENT_EXTENSIONS = ("pdb", "gro")
TRAJECTORY_EXTENSIONS = ("xtc", "trr", "dcd", "pdb")

RCSB_DOWNLOAD_URL = "https://files.rcsb.org/view/{pdb_id}.pdb"
DOWNLOAD_TIMEOUT = 30.0

MAX_SELECTION_DEPTH = 64

# Backbone dihedral windows in degrees, inclusive.
HELIX_PHI = (-90.0, -30.0)
HELIX_PSI = (-77.0, -17.0)
STRAND_PHI = (-150.0, -90.0)
STRAND_PSI = (90.0, 180.0)

DEFAULT_SELECTION = "all"
