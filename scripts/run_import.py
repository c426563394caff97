#!/usr/bin/env python3
"""Run the assessment import outside Celery.

Full run over the configured source directory:
    python scripts/run_import.py
Single file (e.g. to try a new registry entry):
    python scripts/run_import.py --file sources/pssa/school/2024_PSSA_School.xlsx --program pssa --level school

Ctrl-C stops the run after the file currently being imported.
"""

import argparse
import json
import logging
import signal
import sys
import threading
from pathlib import Path

# Add backend to path when running as script
backend_dir = Path(__file__).resolve().parent.parent / "backend"
if backend_dir.exists():
    sys.path.insert(0, str(backend_dir))

from padata.config import get_settings
from padata.db import create_schema, get_engine, get_session_factory
from padata.importers.errors import ConnectionFailure
from padata.importers.orchestrator import ImportOrchestrator
from padata.importers.progress import LoggingProgressReporter
from padata.importers.registry import LEVELS, PROGRAMS


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import PSSA and Keystone result files")
    parser.add_argument("--source-dir", help="Root of the source tree (default: settings.source_dir)")
    parser.add_argument("--file", help="Import a single file instead of the whole tree")
    parser.add_argument("--program", choices=PROGRAMS, help="Test program of --file")
    parser.add_argument("--level", choices=LEVELS, help="Level of --file")
    parser.add_argument("--create-schema", action="store_true", help="Create missing tables first")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)
    if args.file and not (args.program and args.level):
        parser.error("--file requires --program and --level")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = get_settings()
    if args.create_schema:
        create_schema(get_engine())

    orchestrator = ImportOrchestrator(
        session_factory=get_session_factory(),
        source_dir=args.source_dir or settings.source_dir,
        progress=LoggingProgressReporter(),
        settings=settings,
    )

    try:
        if args.file:
            result = orchestrator.run_file(args.file, args.program, args.level)
            print(json.dumps(result.model_dump(mode="json"), indent=2))
            return 0 if result.status != "failed" else 1

        cancel_event = threading.Event()
        signal.signal(signal.SIGINT, lambda signum, frame: cancel_event.set())
        summary = orchestrator.run_all(cancel_event)
    except ConnectionFailure as e:
        logging.getLogger(__name__).error(str(e))
        return 2

    print(json.dumps(summary.model_dump(mode="json", exclude={"files"}), indent=2))
    return 0 if not summary.files_failed else 1


if __name__ == "__main__":
    sys.exit(main())
