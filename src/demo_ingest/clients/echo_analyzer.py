"""Local stand-in analysis executable for integration tests and smoke runs."""

from __future__ import annotations

import argparse
import hashlib
import json
import os
import sys
import time
from pathlib import Path


def main(argv: list[str] | None = None) -> int:
    """Print a deterministic JSON document describing the input file."""

    parser = argparse.ArgumentParser()
    parser.add_argument("-q", action="store_true", dest="quiet")
    parser.add_argument("-i", required=True, dest="input_path")
    args = parser.parse_args(argv)

    sleep_seconds = float(os.getenv("DEMO_INGEST_ECHO_SLEEP_SECONDS", "0") or 0)
    if sleep_seconds > 0:
        time.sleep(sleep_seconds)

    exit_code = int(os.getenv("DEMO_INGEST_ECHO_EXIT_CODE", "0") or 0)
    if exit_code != 0:
        sys.stderr.write(f"echo_analyzer: simulated failure for {args.input_path}\n")
        return exit_code

    data = Path(args.input_path).read_bytes()
    payload = {
        "ok": True,
        "input": Path(args.input_path).name,
        "size": len(data),
        "sha256": hashlib.sha256(data).hexdigest(),
    }
    sys.stdout.write(json.dumps(payload, sort_keys=True))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
