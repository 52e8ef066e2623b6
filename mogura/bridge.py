"""Dict-in/dict-out API consumed by a viewer frontend."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from mogura.errors import MoguraError, error_result
from mogura.model import Model
from mogura.worker import Worker

logger = logging.getLogger(__name__)


class Api:
    """Payload API over the model.

    Every method returns a JSON-ready dict; failures are reported as
    ``{"ok": False, "error": {...}}`` instead of raising.

    Attributes
    ----------
    _model
        Model instance handling domain logic.
    _worker
        Worker for background execution.
    """

    def __init__(self, model: Model, worker: Worker) -> None:
        self._model = model
        self._worker = worker

    def _call(
        self,
        name: str,
        fn: Callable[..., Dict[str, object]],
        *args: object,
        background: bool = False,
    ) -> Dict[str, object]:
        try:
            if background:
                return self._worker.submit(fn, *args).result()
            return fn(*args)
        except MoguraError as exc:
            logger.debug("%s failed: %s", name, exc.message)
            return exc.to_result()
        except Exception as exc:
            logger.exception("%s unexpected error", name)
            return error_result("unexpected", "Unexpected error", str(exc))

    def load_structure(self, payload: Dict[str, object]):
        """Load a structure from a path, in-memory content, or a PDB id.

        Parameters
        ----------
        payload
            Payload containing one of ``path``, ``content`` (with
            ``extension``), or ``pdb_id``.

        Returns
        -------
        dict
            Load response payload.
        """

        if not isinstance(payload, dict):
            return error_result("invalid_input", "payload must be an object")
        path = payload.get("path")
        content = payload.get("content")
        pdb_id = payload.get("pdb_id")
        if path:
            logger.debug("load_structure requested path=%s", path)
            return self._call(
                "load_structure", self._model.load_structure, path, background=True
            )
        if content is not None:
            extension = payload.get("extension") or "pdb"
            logger.debug("load_structure requested content extension=%s", extension)
            return self._call(
                "load_structure",
                self._model.load_structure_from_content,
                content,
                extension,
                background=True,
            )
        if pdb_id:
            logger.debug("load_structure requested pdb_id=%s", pdb_id)
            return self._call(
                "load_structure", self._model.fetch_structure, str(pdb_id), background=True
            )
        return error_result("invalid_input", "path, content or pdb_id is required")

    def load_trajectory(self, payload: Dict[str, object]):
        """Load a trajectory for the current structure.

        Parameters
        ----------
        payload
            Payload containing ``path``.

        Returns
        -------
        dict
            Trajectory response payload.
        """

        if not isinstance(payload, dict):
            return error_result("invalid_input", "payload must be an object")
        path = payload.get("path")
        if not path:
            return error_result("invalid_input", "path is required")
        logger.debug("load_trajectory requested path=%s", path)
        return self._call(
            "load_trajectory", self._model.load_trajectory, path, background=True
        )

    def get_summary(self, payload: Optional[Dict[str, object]] = None):
        return self._call("get_summary", self._model.get_summary)

    def get_bonds(self, payload: Optional[Dict[str, object]] = None):
        return self._call("get_bonds", self._model.get_bonds, background=True)

    def select_atoms(self, payload: Dict[str, object]):
        """Evaluate a selection query.

        Parameters
        ----------
        payload
            Payload containing ``query``.

        Returns
        -------
        dict
            Selection payload with atom ids and bonds.
        """

        if not isinstance(payload, dict):
            return error_result("invalid_input", "payload must be an object")
        query = payload.get("query")
        if query is None:
            return error_result("invalid_input", "query is required")
        logger.debug("select_atoms query=%s", query)
        return self._call("select_atoms", self._model.select, query)

    def get_secondary_structure(self, payload: Optional[Dict[str, object]] = None):
        return self._call(
            "get_secondary_structure", self._model.get_secondary_structure
        )

    def playback(self, payload: Dict[str, object]):
        """Apply a playback command.

        Parameters
        ----------
        payload
            Payload containing ``command`` (``start``, ``stop``, ``loop`` or
            ``seek``) and ``frame_id`` for seeks.

        Returns
        -------
        dict
            Playback state payload.
        """

        if not isinstance(payload, dict):
            return error_result("invalid_input", "payload must be an object")
        command = payload.get("command")
        if command == "start":
            return self._call("playback", self._model.start)
        if command == "stop":
            return self._call("playback", self._model.stop)
        if command == "loop":
            return self._call("playback", self._model.loop)
        if command == "seek":
            frame_id = payload.get("frame_id")
            if frame_id is None:
                return error_result("invalid_input", "frame_id is required")
            return self._call("playback", self._model.seek, frame_id)
        return error_result("invalid_input", f"Unknown playback command '{command}'")

    def tick(self, payload: Optional[Dict[str, object]] = None):
        return self._call("tick", self._model.tick)

    def export_pdb(self, payload: Optional[Dict[str, object]] = None):
        """Render PDB text and optionally save it.

        Parameters
        ----------
        payload
            Optional ``query``, ``frame_id`` and output ``path``.

        Returns
        -------
        dict
            Payload containing the PDB text, or the saved path.
        """

        payload = payload or {}
        if not isinstance(payload, dict):
            return error_result("invalid_input", "payload must be an object")
        result = self._call(
            "export_pdb",
            self._model.export_pdb,
            payload.get("query"),
            payload.get("frame_id"),
        )
        path = payload.get("path")
        if not path or not result.get("ok"):
            return result
        try:
            with open(str(path), "w", encoding="utf-8") as handle:
                handle.write(str(result["pdb"]))
        except OSError as exc:
            logger.exception("export_pdb failed to write %s", path)
            return error_result("save_failed", "Failed to save PDB", str(exc))
        return {"ok": True, "path": str(path), "count": result["count"]}

    def log_client_error(self, payload: Dict[str, object]):
        """Log a frontend error into the Python logs.

        Parameters
        ----------
        payload
            Payload containing the error message.

        Returns
        -------
        dict
            Acknowledgement payload.
        """

        if not isinstance(payload, dict):
            return error_result("invalid_input", "payload must be an object")
        message = payload.get("message")
        if not message:
            return error_result("invalid_input", "message is required")
        logger.error("Client error: %s", message)
        return {"ok": True}
