from __future__ import annotations

"""Centralized path utilities for the project.

These provide absolute `Path` objects to key directories so the command-line
checker does not depend on the working directory.
"""

from pathlib import Path


# The `stockflow` package directory is one level below the project root
PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Canonical directories used by the command-line checker
PROJECTS_DIR = PROJECT_ROOT / "projects"
OUTPUT_DIR = PROJECT_ROOT / "output"
LOGS_DIR = PROJECT_ROOT / "logs"
