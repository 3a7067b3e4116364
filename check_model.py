#!/usr/bin/env python3
from __future__ import annotations

"""
Model checker for stock & flow project documents.

Responsibilities:
- Configure logging to both console and `logs/run.log`
- Load a YAML/JSON project document (diagram payload + simulationParameters)
- Run the validate-then-translate pipeline:
  * every flow's rate equation references only names wired to it
  * start/end/dt/method are valid; 1000+ steps needs --allow-high-step-count
- Write the engine JSON consumed by the integrator

Exit codes:
- 0: engine JSON written
- 1: the run is blocked by issues (listed on stdout)
- 2: the document could not be loaded or the graph is corrupt
"""

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import List, Optional

from stockflow.errors import ModelCorruption
from stockflow.io_paths import LOGS_DIR, OUTPUT_DIR, PROJECTS_DIR
from stockflow.issues import format_issues
from stockflow.pipeline import prepare_run
from stockflow.project_io import load_project
from stockflow.utils_logging import configure_logging


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments for the checker.

    Exactly one of `--project` or `--preset` may be provided; a preset name
    resolves to `<name>.json`, `<name>.yaml` or `<name>.yml` under `projects/`.
    """
    p = argparse.ArgumentParser(description="Stock & flow model checker")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--project", type=str, help="Path to a project YAML/JSON file")
    group.add_argument("--preset", type=str, help="Project name under the 'projects/' directory")
    p.add_argument("--output", type=str, help="Where to write the engine JSON (default: output/<project>_engine.json)")
    p.add_argument(
        "--allow-high-step-count",
        action="store_true",
        help="Proceed even when the run has 1000 or more steps",
    )
    p.add_argument("--log-dir", type=str, default=str(LOGS_DIR), help="Directory for run.log")
    p.add_argument("--debug", action="store_true")
    return p.parse_args(argv)


def _resolve_project_path(project: Optional[str], preset: Optional[str]) -> Path:
    if project:
        return Path(project)
    for suffix in (".json", ".yaml", ".yml"):
        candidate = PROJECTS_DIR / f"{preset}{suffix}"
        if candidate.exists():
            return candidate
    raise FileNotFoundError(f"No project named '{preset}' under {PROJECTS_DIR}")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(Path(args.log_dir), debug=args.debug)
    log = logging.getLogger("checker")

    try:
        path = _resolve_project_path(args.project, args.preset)
        project = load_project(path)
    except (OSError, ValueError) as e:
        log.error("Could not load project: %s", e)
        return 2

    try:
        result = prepare_run(project.graph, project.parameters, args.allow_high_step_count)
    except ModelCorruption as e:
        log.error("Model corruption (this is a defect, not a modelling error): %s", e.log_message())
        return 2

    if not result.ok:
        if result.blocked_by_advisory:
            print("Run blocked; re-run with --allow-high-step-count to proceed:")
        else:
            print("Please fix the following errors:")
        print(format_issues(result.issues))
        return 1

    output_path = Path(args.output) if args.output else OUTPUT_DIR / f"{project.name}_engine.json"
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(result.to_engine_json(), indent=2), encoding="utf-8")
    log.info("Engine JSON written to %s", output_path)
    print(f"OK: {project.name} translated ({len(result.model.stocks)} stocks, "
          f"{len(result.model.converters)} converters).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
