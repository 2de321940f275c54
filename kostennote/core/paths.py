"""
kostennote/core/paths.py - Centralized Path Configuration

Single source of truth for all directory and file paths.
Every module imports from here instead of computing its own DATA_DIR.

Environment overrides:
  KOSTENNOTE_DATA_DIR     - input CSV, letterhead, signature, logs
  KOSTENNOTE_OUTPUT_DIR   - generated invoice PDFs
  KOSTENNOTE_CONFIG       - JSON config override file
"""

import os
import logging

log = logging.getLogger("kostennote.paths")

# ── Project Root ──────────────────────────────────────────────────────────────
_THIS_FILE = os.path.abspath(__file__)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(_THIS_FILE)))


def _resolve_dir(env_name: str, default: str) -> str:
    """Env override wins when it points at an existing directory."""
    env_dir = os.environ.get(env_name, "")
    if env_dir and os.path.isdir(env_dir):
        return env_dir
    if env_dir:
        log.warning("%s=%s is not a directory, using %s", env_name, env_dir, default)
    return default


# ── Core Directories ─────────────────────────────────────────────────────────
DATA_DIR = _resolve_dir("KOSTENNOTE_DATA_DIR", os.path.join(PROJECT_ROOT, "data"))
OUTPUT_DIR = os.environ.get("KOSTENNOTE_OUTPUT_DIR", "") or os.path.join(PROJECT_ROOT, "output")
LOG_DIR = os.path.join(DATA_DIR, "logs")

# ── Key File Paths ───────────────────────────────────────────────────────────
CONFIG_PATH = os.environ.get("KOSTENNOTE_CONFIG", "") or os.path.join(PROJECT_ROOT, "kostennote_config.json")
INPUT_CSV_PATH = os.path.join(DATA_DIR, "Gesamtliste.csv")
LETTERHEAD_PATH = os.path.join(DATA_DIR, "briefkopf.pdf")
SIGNATURE_PATH = os.path.join(DATA_DIR, "unterschrift.png")


def ensure_dirs(*dirs: str) -> None:
    """Create output/log directories on demand (never at import time)."""
    for d in dirs or (OUTPUT_DIR, LOG_DIR):
        os.makedirs(d, exist_ok=True)


def validate_paths() -> dict:
    """Runtime validation - call at CLI startup to catch path issues early.

    Returns:
        {"ok": bool, "errors": [str], "warnings": [str], "resolved": {name: path}}
    """
    result = {"ok": True, "errors": [], "warnings": [], "resolved": {}}

    checks = {
        "DATA_DIR": (DATA_DIR, True),
        "INPUT_CSV_PATH": (INPUT_CSV_PATH, False),
        "LETTERHEAD_PATH": (LETTERHEAD_PATH, False),
        "SIGNATURE_PATH": (SIGNATURE_PATH, False),
        "CONFIG_PATH": (CONFIG_PATH, False),
    }

    for name, (path, required) in checks.items():
        result["resolved"][name] = path
        if not os.path.exists(path):
            if required:
                result["errors"].append(f"{name} not found: {path}")
                result["ok"] = False
            else:
                result["warnings"].append(f"{name} not found: {path}")

    result["resolved"]["OUTPUT_DIR"] = OUTPUT_DIR
    return result
