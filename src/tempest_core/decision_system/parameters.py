"""Loader for the packaged algorithm parameters."""
from pathlib import Path
from typing import Any

import yaml

DEFAULT_PARAMETERS_PATH = Path(__file__).parent / "config" / "parameters.yaml"


def load_parameters(path: str | Path | None = None) -> dict[str, Any]:
    """
    Read the parameters YAML.

    Args:
        path: Override file; the packaged parameters.yaml when None

    Returns:
        Nested dict keyed by component (network, gas, risk, indicators, strategy)
    """
    if path is None:
        path = DEFAULT_PARAMETERS_PATH

    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)
