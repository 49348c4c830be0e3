"""Snapshot configuration loader."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ownership_snapshot.core.config import SnapshotConfig

DEFAULT_CONFIG_PATH = Path(__file__).parent / "snapshot.yaml"


def load_raw_config(path: Path | str | None = None) -> dict[str, Any]:
    """
    Load a snapshot configuration file without validating it.

    Parameters
    ----------
    path : Path | str | None
        YAML file to read; the bundled `snapshot.yaml` when None

    Returns
    -------
    dict[str, Any]
        Parsed configuration mapping

    """
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(path: Path | str | None = None, **overrides: Any) -> SnapshotConfig:
    """
    Load and validate a snapshot configuration.

    Parameters
    ----------
    path : Path | str | None
        YAML file to read; the bundled `snapshot.yaml` when None
    **overrides : Any
        Top-level settings replacing the file's values (None values are ignored)

    Returns
    -------
    SnapshotConfig
        Validated configuration

    Raises
    ------
    ValueError
        If the configuration is invalid

    """
    data = load_raw_config(path)
    data.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return SnapshotConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid snapshot configuration {path or DEFAULT_CONFIG_PATH}: {e}"
        raise ValueError(msg) from e
