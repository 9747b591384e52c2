"""
config.py

Default configuration tables, nested-dict merging and logging setup.

Date: 19-10-2026
"""

from __future__ import annotations

import copy
import logging
from dataclasses import asdict, fields
from typing import Any, Dict, Mapping, Optional

from .modules import ModuleStates


DEFAULT_ANTENNA_NOISE_TEMPERATURE_K = 50.0

DEFAULT_ANALYZER: Dict[str, Any] = {
    "width": 824,
    "center_frequency_hz": 1.6e9,
    "span_hz": 100e6,
    "rbw_hz": 1e6,
    "min_amplitude_dbm": -100.0,
    "max_amplitude_dbm": -40.0,
    "refresh_rate_hz": 10.0,
    "n_traces": 3,
    "use_tap_a": True,
    "use_tap_b": True,
}

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def default_front_end() -> Dict[str, Any]:
    """
    Fresh nested dict of every front-end setting at its default value.

    Module sections are generated from the state dataclasses so the two can
    not drift apart.
    """
    modules = ModuleStates()
    cfg: Dict[str, Any] = {
        "is_powered": True,
        "antenna_noise_temperature_k": DEFAULT_ANTENNA_NOISE_TEMPERATURE_K,
    }
    for f in fields(modules):
        cfg[f.name] = asdict(getattr(modules, f.name))
    return cfg


def merge_config(defaults: Mapping[str, Any],
                 overrides: Optional[Mapping[str, Any]] = None,
                 path: str = "") -> Dict[str, Any]:
    """
    Deep-merge ``overrides`` onto a copy of ``defaults``.

    Raises
    ------
    ValueError
        If ``overrides`` contains a key that ``defaults`` does not, or tries
        to replace a section with a scalar.
    """
    merged = copy.deepcopy(dict(defaults))
    for key, value in (overrides or {}).items():
        where = f"{path}{key}"
        if key not in merged:
            raise ValueError(f"Unknown configuration key '{where}'")
        if isinstance(merged[key], dict):
            if not isinstance(value, Mapping):
                raise ValueError(f"Configuration key '{where}' expects a section")
            merged[key] = merge_config(merged[key], value, path=where + ".")
        else:
            merged[key] = value
    return merged


def setup_logging(level: int | str = logging.INFO) -> None:
    """Basic console logging for scripts and notebooks."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
