"""
Configuration for Scan Reconcile.

Config is declarative JSON - edit the file, not the code.
Every key is optional; missing keys fall back to the dataclass defaults.
"""

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

DEFAULT_CONFIG_PATH = Path(__file__).parent / "scan_config.json"


@dataclass
class ScanConfig:
    """Settings for matching, persistence, input handling and reporting."""
    subcode_separator: str = "-"
    snapshot_key: str = "scanProgress"
    camera_cooldown_seconds: float = 3.0
    input_debounce_seconds: float = 1.0
    time_format: str = "%I:%M:%S %p"
    none_placeholder: str = "None"
    compression_level: int = 6

    def __post_init__(self):
        if not self.subcode_separator:
            raise ValueError("subcode_separator must not be empty")
        if not self.snapshot_key:
            raise ValueError("snapshot_key must not be empty")
        if self.camera_cooldown_seconds < 0 or self.input_debounce_seconds < 0:
            raise ValueError("cooldown and debounce windows must not be negative")
        if not -1 <= self.compression_level <= 9:
            raise ValueError("compression_level must be between -1 and 9")


def load_config(config_path: Optional[str | Path] = None) -> ScanConfig:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to a scan_config.json (default: the packaged one)

    Returns:
        ScanConfig with file values over defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    with open(path, "r") as f:
        data = json.load(f)

    known = {f.name for f in fields(ScanConfig)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    return ScanConfig(**data)
