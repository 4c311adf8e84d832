"""Tests for session config validation and settings."""

import pytest
from pydantic import ValidationError

from pmm.config import MMConfig, Settings, get_settings, reload_settings
from pmm.market_maker.quotes import compute_spread_cents
from pmm.market_maker.types import FairValueMethod, Venue
from tests.conftest import make_config


class TestMMConfig:
    def test_defaults(self):
        config = MMConfig(venue="polymarket", market_id="m", token_id="t")

        assert config.base_spread_cents == 2
        assert config.order_size == 50
        assert config.max_inventory == 500
        assert config.fair_value_method == FairValueMethod.WEIGHTED_MID
        assert config.requote_interval_ms == 5000
        assert config.max_loss_usd == 100
        assert config.levels_per_side == 1
        assert config.effective_level_spacing_cents == 2
        assert config.effective_level_size_decay == 0.5

    def test_identity_is_derived(self):
        config = MMConfig(venue=Venue.KALSHI, market_id="m", token_id="abcdefghijklmnop")

        assert config.id == "kalshi_abcdefgh"
        assert config.outcome_name == "kalshi:abcdefghijkl"

    def test_explicit_identity_kept(self):
        config = make_config(id="custom", outcome_name="Yes")
        assert config.id == "custom"
        assert config.outcome_name == "Yes"

    def test_is_immutable(self):
        config = make_config()
        with pytest.raises(ValidationError):
            config.base_spread_cents = 5

    @pytest.mark.parametrize(
        "overrides",
        [
            {"min_spread_cents": 5, "max_spread_cents": 4, "base_spread_cents": 4},
            {"skew_factor": 1.5},
            {"fair_value_alpha": 0},
            {"fair_value_method": "median"},
            {"venue": "nasdaq"},
            {"market_id": ""},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValidationError):
            make_config(**overrides)

    def test_base_spread_outside_bounds_is_clamped_not_rejected(self):
        config = make_config(base_spread_cents=0.5, min_spread_cents=1.0, max_spread_cents=10.0)

        assert config.base_spread_cents == 0.5
        assert compute_spread_cents(config, 0.0) == pytest.approx(1.0)

    def test_zero_levels_means_one(self):
        assert make_config(max_orders_per_side=0).levels_per_side == 1

    def test_replace_validates(self):
        config = make_config()
        assert config.replace(skew_factor=0.2).skew_factor == 0.2
        with pytest.raises(ValidationError):
            config.replace(skew_factor=2)

    def test_replace_rejects_identity_and_unknown_fields(self):
        config = make_config()
        with pytest.raises(ValueError):
            config.replace(venue=Venue.KALSHI)
        with pytest.raises(ValueError, match="Unknown"):
            config.replace(spread=3)


class TestSettings:
    def test_build_mm_config_uses_env_defaults(self, monkeypatch):
        monkeypatch.setenv("MM_BASE_SPREAD_CENTS", "3")
        monkeypatch.setenv("MM_FAIR_VALUE_METHOD", "vwap")
        settings = Settings(_env_file=None)

        config = settings.build_mm_config("polymarket", "m", "tok", order_size=20, skew_factor=None)

        assert config.base_spread_cents == 3
        assert config.fair_value_method == FairValueMethod.VWAP
        assert config.order_size == 20
        assert config.skew_factor == 0.5
        assert config.venue == Venue.POLYMARKET

    def test_global_settings_cached_until_reload(self, monkeypatch):
        first = get_settings()
        assert get_settings() is first

        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        reloaded = reload_settings()

        assert reloaded is not first
        assert reloaded.log_level == "DEBUG"
        assert get_settings() is reloaded
