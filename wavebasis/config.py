"""TOML configuration for analysis runs.

Settings are read from the ``[wavebasis]`` table of a TOML file::

    [wavebasis]
    wavelet = "db2"
    mode = "stationary"
    cost = "log-energy-entropy"
    method = "jbb"

    [wavebasis.expansion]
    shift_depth = 2
"""

from __future__ import annotations

import logging
import os
import tomllib
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from wavebasis.bestbasis.costs import CostKind
from wavebasis.bestbasis.search import SelectionMethod
from wavebasis.dsp.filters import available_wavelets
from wavebasis.dsp.packets import DecompositionMode
from wavebasis.dsp.siwpd import ExpansionPolicy
from wavebasis.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

ENV_VAR = "WAVEBASIS_CONFIG"
DEFAULT_FILENAME = "wavebasis.toml"


class Settings(BaseModel):
    """Validated analysis settings; defaults apply when no file is found."""

    model_config = {"extra": "forbid", "frozen": True}

    wavelet: str = "haar"
    mode: DecompositionMode = DecompositionMode.ORDINARY
    depth: int | None = Field(default=None, ge=0)
    cost: CostKind = CostKind.SHANNON
    method: SelectionMethod | None = None
    p: float = Field(default=1.0, gt=0.0)
    expansion: ExpansionPolicy = Field(default_factory=ExpansionPolicy)

    @field_validator("wavelet")
    @classmethod
    def _known_wavelet(cls, value: str) -> str:
        if value not in available_wavelets():
            raise ValueError(f"{value!r} is not an orthogonal discrete wavelet")
        return value

    def merged(self, **overrides: Any) -> Settings:
        """Copy with the non-None overrides applied and revalidated."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return build_settings(data)


def build_settings(data: dict[str, Any]) -> Settings:
    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid wavebasis settings: {e}") from e


def resolve_config_path(config_path: str | None = None) -> str | None:
    """Resolve the configuration file from env, explicit path, or defaults.

    Returns:
        Path of the file to load, or None when no default file exists

    Raises:
        FileNotFoundError: If the env or explicit path does not exist
    """
    explicit = os.environ.get(ENV_VAR) or config_path
    if explicit:
        if not os.path.exists(explicit):
            raise FileNotFoundError(
                f"Config file not found at {explicit}. Set {ENV_VAR} or create {DEFAULT_FILENAME}"
            )
        return explicit
    candidates = [
        DEFAULT_FILENAME,
        os.path.expanduser(f"~/{DEFAULT_FILENAME}"),
    ]
    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate
    return None


def load_settings(config_path: str | None = None) -> Settings:
    """Load Settings from the resolved configuration file.

    Raises:
        FileNotFoundError: If an env or explicit path does not exist
        InvalidArgumentError: If the file holds invalid settings
    """
    path = resolve_config_path(config_path)
    if path is None:
        logger.debug("No configuration file found, using defaults")
        return Settings()
    with open(path, "rb") as f:
        try:
            config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise InvalidArgumentError(f"Malformed TOML in {path}: {e}") from e
    logger.debug(f"Loaded configuration from {path}")
    return build_settings(config.get("wavebasis", {}))
