"""
Light-weight .env loader used by the protolator command line.

• Ignores blank lines & #-comments
• Does **not** overwrite variables already defined in the host shell
  (so command-line/CI overrides still win).
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Dict


def parse_env_file(path: Path) -> Dict[str, str]:
    env: Dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        if "=" not in line:
            continue                         # skip malformed
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'\"")   # trim simple quotes
        env[key] = value
    return env


def load_env_file(path: str | Path | None) -> Dict[str, str]:
    """
    Load *path* into ``os.environ`` without clobbering existing values.

    Returns the variables that were actually applied.  A missing file is
    not an error.
    """
    if path is None:
        return {}
    env_file = Path(path)
    if not env_file.exists():
        return {}

    applied: Dict[str, str] = {}
    for k, v in parse_env_file(env_file).items():
        # Keep explicit host-level vars intact
        if k not in os.environ:
            os.environ[k] = v
            applied[k] = v
    return applied
