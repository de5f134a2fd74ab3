"""Configuration loading for the block race.

Providers come from config.yaml's race section. URLs may reference
environment variables as ${NAME}; load .env before calling load_race_config().
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

DEFAULT_PROVIDERS = {
    "Alchemy": "wss://eth-mainnet.g.alchemy.com/v2/${ALCHEMY_TOKEN}",
    "Infura": "wss://mainnet.infura.io/ws/v3/${INFURA_TOKEN}",
}


@dataclass(frozen=True)
class RaceConfig:
    # Contestant name -> websocket URL, in declaration (tie-break) order
    providers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PROVIDERS))

    # Supplies block timestamps; not privileged in the ranking
    primary_provider: str = "Alchemy"

    blocks_per_aggregate_print: int = 10
    reconnect_delay_sec: float = 5.0

    @property
    def contestants(self) -> tuple[str, ...]:
        return tuple(self.providers)

    @property
    def primary_url(self) -> str:
        return self.providers[self.primary_provider]


def validate_config(cfg: RaceConfig) -> None:
    """Validate config values. Raises ValueError with all issues found."""
    errors: list[str] = []

    if not cfg.providers:
        errors.append("providers must contain at least one entry")
    if cfg.primary_provider not in cfg.providers:
        errors.append(
            f"primary_provider {cfg.primary_provider!r} must be one of {sorted(cfg.providers)}"
        )
    for name, url in cfg.providers.items():
        if not url.startswith(("ws://", "wss://")):
            errors.append(f"provider {name!r} url must start with ws:// or wss://, got {url!r}")
        if "$" in url:
            errors.append(f"provider {name!r} url references an unset environment variable")
    if cfg.blocks_per_aggregate_print <= 0:
        errors.append(
            f"blocks_per_aggregate_print must be > 0, got {cfg.blocks_per_aggregate_print}"
        )
    if cfg.reconnect_delay_sec < 0:
        errors.append(f"reconnect_delay_sec must be >= 0, got {cfg.reconnect_delay_sec}")

    if errors:
        raise ValueError("Config validation failed:\n  " + "\n  ".join(errors))


def load_race_config(raw: dict[str, Any] | None) -> RaceConfig:
    """Load RaceConfig from config.yaml's race section."""
    race = (raw or {}).get("race") or {}

    providers = race.get("providers", DEFAULT_PROVIDERS)
    if not isinstance(providers, dict):
        raise ValueError(
            f"Config validation failed:\n  providers must be a mapping of name -> url, got {providers!r}"
        )
    cfg = RaceConfig(
        providers={str(name): os.path.expandvars(str(url)) for name, url in providers.items()},
        primary_provider=str(race.get("primary_provider", "Alchemy")),
        blocks_per_aggregate_print=int(race.get("blocks_per_aggregate_print", 10)),
        reconnect_delay_sec=float(race.get("reconnect_delay_sec", 5.0)),
    )
    validate_config(cfg)
    return cfg
