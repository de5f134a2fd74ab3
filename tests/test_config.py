"""
Unit tests for configuration loading.

Tests config parsing, env expansion, defaults, and validation.
"""

import pytest

from block_race.config import RaceConfig, load_race_config, validate_config


class TestLoadRaceConfig:
    def test_loads_race_section(self):
        raw = {
            "race": {
                "providers": {
                    "Alchemy": "wss://alchemy.example/v2/abc",
                    "Infura": "wss://infura.example/ws/v3/def",
                    "Local": "ws://127.0.0.1:8546",
                },
                "primary_provider": "Infura",
                "blocks_per_aggregate_print": 5,
                "reconnect_delay_sec": 2,
            }
        }
        cfg = load_race_config(raw)

        assert cfg.contestants == ("Alchemy", "Infura", "Local")
        assert cfg.primary_provider == "Infura"
        assert cfg.primary_url == "wss://infura.example/ws/v3/def"
        assert cfg.blocks_per_aggregate_print == 5
        assert cfg.reconnect_delay_sec == 2.0

    def test_expands_environment_variables(self, monkeypatch):
        monkeypatch.setenv("ALCHEMY_TOKEN", "tok-a")
        monkeypatch.setenv("INFURA_TOKEN", "tok-i")

        cfg = load_race_config({})

        assert cfg.providers["Alchemy"] == "wss://eth-mainnet.g.alchemy.com/v2/tok-a"
        assert cfg.providers["Infura"] == "wss://mainnet.infura.io/ws/v3/tok-i"
        assert cfg.primary_provider == "Alchemy"
        assert cfg.blocks_per_aggregate_print == 10

    def test_unset_variable_fails_fast(self, monkeypatch):
        monkeypatch.delenv("MISSING_TOKEN", raising=False)
        raw = {"race": {"providers": {"A": "wss://a/${MISSING_TOKEN}"}, "primary_provider": "A"}}
        with pytest.raises(ValueError, match="unset environment variable"):
            load_race_config(raw)

    @pytest.mark.parametrize("providers", [None, ["wss://a"], "wss://a"])
    def test_non_mapping_providers_rejected(self, providers):
        raw = {"race": {"providers": providers, "primary_provider": "A"}}
        with pytest.raises(ValueError, match="providers must be a mapping"):
            load_race_config(raw)

    def test_none_raw_config(self, monkeypatch):
        monkeypatch.setenv("ALCHEMY_TOKEN", "x")
        monkeypatch.setenv("INFURA_TOKEN", "y")
        assert load_race_config(None).contestants == ("Alchemy", "Infura")


class TestValidateConfig:
    def _cfg(self, **kwargs):
        base = dict(providers={"A": "wss://a", "B": "ws://b"}, primary_provider="A")
        base.update(kwargs)
        return RaceConfig(**base)

    def test_valid_config_passes(self):
        validate_config(self._cfg())

    def test_unknown_primary_provider(self):
        with pytest.raises(ValueError, match="primary_provider"):
            validate_config(self._cfg(primary_provider="C"))

    def test_empty_providers(self):
        with pytest.raises(ValueError, match="at least one"):
            validate_config(self._cfg(providers={}))

    def test_non_websocket_url(self):
        with pytest.raises(ValueError, match="ws://"):
            validate_config(self._cfg(providers={"A": "https://a"}))

    def test_bad_aggregate_period(self):
        with pytest.raises(ValueError, match="blocks_per_aggregate_print"):
            validate_config(self._cfg(blocks_per_aggregate_print=0))

    def test_negative_reconnect_delay(self):
        with pytest.raises(ValueError, match="reconnect_delay_sec"):
            validate_config(self._cfg(reconnect_delay_sec=-1))

    def test_reports_all_errors_at_once(self):
        with pytest.raises(ValueError) as exc:
            validate_config(self._cfg(primary_provider="C", blocks_per_aggregate_print=-1))
        assert "primary_provider" in str(exc.value)
        assert "blocks_per_aggregate_print" in str(exc.value)
