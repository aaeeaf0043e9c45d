"""Load kicker rating/season settings from a TOML file."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
import tomllib

from domain.common import MidSeasonJoinPolicy
from domain.ratings.calculator import (
    DEFAULT_INITIAL_MMR,
    DEFAULT_K_FACTOR,
    DEFAULT_SCALE_FACTOR,
    MmrParameters,
)


@dataclass(frozen=True)
class KickerConfig:
    """Settings for one kicker deployment."""

    file_path: Path | None
    parameters: MmrParameters = field(default_factory=MmrParameters)
    mid_season_join: MidSeasonJoinPolicy = MidSeasonJoinPolicy.SEED

    def as_config_json(self) -> dict[str, Any]:
        return {
            "initial_mmr": self.parameters.initial_mmr,
            "k_factor": self.parameters.k_factor,
            "scale_factor": self.parameters.scale_factor,
            "mid_season_join": self.mid_season_join.value,
        }


def load_kicker_config(config_path: Path | None) -> KickerConfig:
    """Load and validate a kicker config; ``None`` yields the defaults."""
    if config_path is None:
        return KickerConfig(file_path=None)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if not config_path.is_file():
        raise ValueError(f"Config path is not a file: {config_path}")

    with config_path.open("rb") as file:
        raw = tomllib.load(file)
    return _parse_kicker_config(raw, config_path)


def _parse_kicker_config(raw: dict[str, Any], file_path: Path) -> KickerConfig:
    mmr_raw = raw.get("mmr", {})
    seasons_raw = raw.get("seasons", {})

    initial_mmr_value = mmr_raw.get("initial_mmr", DEFAULT_INITIAL_MMR)
    if isinstance(initial_mmr_value, float) and not initial_mmr_value.is_integer():
        raise ValueError(f"{file_path}: [mmr].initial_mmr must be a whole number")

    parameters = MmrParameters(
        initial_mmr=int(initial_mmr_value),
        k_factor=float(mmr_raw.get("k_factor", DEFAULT_K_FACTOR)),
        scale_factor=float(mmr_raw.get("scale_factor", DEFAULT_SCALE_FACTOR)),
    )
    _validate_parameters(file_path=file_path, parameters=parameters)

    join_value = str(seasons_raw.get("mid_season_join", MidSeasonJoinPolicy.SEED.value)).strip().lower()
    try:
        mid_season_join = MidSeasonJoinPolicy(join_value)
    except ValueError as exc:
        allowed = ", ".join(policy.value for policy in MidSeasonJoinPolicy)
        raise ValueError(
            f"{file_path}: [seasons].mid_season_join must be one of: {allowed}"
        ) from exc

    return KickerConfig(
        file_path=file_path,
        parameters=parameters,
        mid_season_join=mid_season_join,
    )


def _validate_parameters(*, file_path: Path, parameters: MmrParameters) -> None:
    if parameters.initial_mmr <= 0:
        raise ValueError(f"{file_path}: [mmr].initial_mmr must be > 0")
    if parameters.k_factor <= 0.0:
        raise ValueError(f"{file_path}: [mmr].k_factor must be > 0")
    if parameters.scale_factor <= 0.0:
        raise ValueError(f"{file_path}: [mmr].scale_factor must be > 0")


__all__ = ["KickerConfig", "load_kicker_config"]
