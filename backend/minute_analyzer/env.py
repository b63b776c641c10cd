from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv


def load_env(override: bool = False) -> bool:
    """Load MINUTE_* variables from the first .env found; True if any file was read."""
    candidates = [
        Path(__file__).resolve().parents[1] / ".env",
        Path(__file__).resolve().parents[2] / ".env",
    ]
    for path in candidates:
        if path.exists():
            return load_dotenv(path, override=override)
    return load_dotenv(override=override)
