"""Mogura application entrypoint."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Dict, List

from mogura import config
from mogura.bridge import Api
from mogura.logging_config import configure_logging
from mogura.model import Model
from mogura.worker import Worker

logger = logging.getLogger(__name__)


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=f"{config.APP_NAME}")
    parser.add_argument("structure_file", nargs="?", help="Path to a pdb/gro file")
    parser.add_argument("trajectory_file", nargs="?", help="Path to a trajectory file")
    parser.add_argument(
        "--pdb-id",
        dest="pdb_id",
        default=None,
        help="Download this entry from RCSB instead of reading a file",
    )
    parser.add_argument(
        "--select",
        dest="select",
        default=None,
        help="Atom selection query to evaluate",
    )
    parser.add_argument(
        "--ss",
        dest="ss",
        action="store_true",
        help="Report secondary structure of protein residues",
    )
    parser.add_argument(
        "--export",
        dest="export",
        default=None,
        help="Write the selected atoms to this PDB file",
    )
    parser.add_argument(
        "--frame",
        dest="frame",
        type=int,
        default=None,
        help="Trajectory frame to use for --export",
    )
    parser.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="Write logs to this file instead of stderr",
    )
    parser.add_argument(
        "--verbose",
        dest="verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv[1:])


def run(args: argparse.Namespace, api: Api) -> Dict[str, object]:
    """Drive the API from parsed arguments and collect a JSON report.

    Parameters
    ----------
    args
        Parsed command line arguments.
    api
        Bridge API bound to a fresh model.

    Returns
    -------
    dict
        Report with one payload per requested step. ``ok`` is False when
        any step failed.
    """

    report: Dict[str, object] = {}
    if args.structure_file:
        report["load"] = api.load_structure({"path": args.structure_file})
    else:
        report["load"] = api.load_structure({"pdb_id": args.pdb_id})
    if not report["load"].get("ok"):
        report["ok"] = False
        return report

    if args.trajectory_file:
        report["trajectory"] = api.load_trajectory({"path": args.trajectory_file})
    report["summary"] = api.get_summary()
    if args.select is not None:
        report["selection"] = api.select_atoms({"query": args.select})
    if args.ss:
        report["secondary_structure"] = api.get_secondary_structure()
    if args.export:
        report["export"] = api.export_pdb(
            {
                "query": args.select or config.DEFAULT_SELECTION,
                "frame_id": args.frame,
                "path": args.export,
            }
        )
    report["ok"] = all(
        payload.get("ok", False)
        for payload in report.values()
        if isinstance(payload, dict)
    )
    return report


def main() -> None:
    """Run the Mogura command line tool.

    Returns
    -------
    None
        This function does not return a value.
    """

    args = _parse_args(sys.argv)
    configure_logging(args.log_file, verbose=args.verbose)
    if not args.structure_file and not args.pdb_id:
        logger.error("Either structure_file or --pdb-id is required")
        sys.exit(2)
    logger.debug("Starting application")
    with Worker(max_workers=1, max_processes=1) as worker:
        model = Model(cpu_submit=worker.submit_cpu)
        report = run(args, Api(model=model, worker=worker))
    json.dump(report, sys.stdout, indent=2)
    sys.stdout.write("\n")
    if not report.get("ok"):
        sys.exit(1)


if __name__ == "__main__":
    main()
