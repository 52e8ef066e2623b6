"""Model package exports."""

from mogura.model.model import Model
from mogura.model.state import ViewerState
from mogura.model.structure import Atom, Residue, StructureData

__all__ = ["Atom", "Model", "Residue", "StructureData", "ViewerState"]
