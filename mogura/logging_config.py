"""Logging configuration helpers."""

from __future__ import annotations

import logging
import sys
import warnings
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(log_file: Optional[str], verbose: bool = False) -> None:
    """Configure application logging.

    Parameters
    ----------
    log_file
        Optional path to a log file. When omitted, logs go to stderr so that
        stdout stays free for command output.
    verbose
        Log at DEBUG level instead of WARNING.

    Returns
    -------
    None
        This function does not return a value.
    """

    handler_error = None
    handlers = []
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as exc:
            handler_error = exc
    if not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        handlers=handlers,
        format=LOG_FORMAT,
        force=True,
    )
    for name in ("MDAnalysis", "MDAnalysis.coordinates", "MDAnalysis.topology", "MDAnalysis.core"):
        logging.getLogger(name).setLevel(logging.ERROR)
    warnings.filterwarnings(
        "ignore",
        message="Element information is missing*",
        category=UserWarning,
        module=r"MDAnalysis\..*",
    )
    warnings.filterwarnings(
        "ignore",
        message="Unit cell dimensions not found*",
        category=UserWarning,
        module=r"MDAnalysis\..*",
    )
    if handler_error is not None:
        logging.getLogger(__name__).warning(
            "Failed to open log file '%s': %s", log_file, handler_error
        )
