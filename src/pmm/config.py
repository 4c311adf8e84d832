"""Configuration management for pmm."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pmm.market_maker.types import FairValueMethod, Venue

DEFAULT_LEVEL_SIZE_DECAY = 0.5


class MMConfig(BaseModel):
    """Quoting parameters for one market-making session.

    Immutable once built. Reconfiguring a session means building a new
    instance (see ``MMConfig.replace``).
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    # Identity
    id: str = Field(default="", description="Session id (derived from venue and token if empty)")
    venue: Venue = Field(description="Venue the session quotes on")
    market_id: str = Field(min_length=1, description="Venue market identifier")
    token_id: str = Field(min_length=1, description="Outcome token identifier")
    outcome_name: str = Field(default="", description="Display name for the outcome")
    neg_risk: bool = Field(default=False, description="Negative-risk market flag")

    # Spread
    base_spread_cents: float = Field(default=2.0, gt=0.0, description="Base spread in cents")
    min_spread_cents: float = Field(default=1.0, ge=0.0, description="Minimum spread in cents")
    max_spread_cents: float = Field(default=10.0, gt=0.0, description="Maximum spread in cents")

    # Size and inventory
    order_size: float = Field(default=50.0, ge=1.0, description="Shares per innermost level")
    max_inventory: float = Field(default=500.0, ge=0.0, description="Absolute inventory ceiling in shares")
    skew_factor: float = Field(default=0.5, ge=0.0, le=1.0, description="Inventory skew strength")
    volatility_multiplier: float = Field(default=10.0, ge=0.0, description="Spread widening per unit volatility")

    # Fair value
    fair_value_alpha: float = Field(default=0.3, gt=0.0, le=1.0, description="EMA smoothing factor")
    fair_value_method: FairValueMethod = Field(default=FairValueMethod.WEIGHTED_MID)

    # Requoting
    requote_interval_ms: int = Field(default=5000, ge=0, description="Maximum time between requotes")
    requote_threshold_cents: float = Field(default=1.0, ge=0.0, description="Fair value move forcing a requote")

    # Risk
    max_position_value_usd: float = Field(default=1000.0, ge=0.0, description="Maximum position value")
    max_loss_usd: float = Field(default=100.0, ge=0.0, description="Realized loss that halts quoting")

    # Ladder
    max_orders_per_side: int = Field(default=1, ge=0, description="Price levels per side")
    level_spacing_cents: Optional[float] = Field(default=None, ge=0.0, description="Extra offset per level")
    level_size_decay: Optional[float] = Field(default=None, gt=0.0, le=1.0, description="Size multiplier per level")

    @model_validator(mode="before")
    @classmethod
    def fill_identity(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        venue = data.get("venue")
        token_id = str(data.get("token_id") or "")
        venue_name = venue.value if isinstance(venue, Venue) else str(venue)
        if not data.get("id"):
            data = {**data, "id": f"{venue_name}_{token_id[:8]}"}
        if not data.get("outcome_name"):
            data = {**data, "outcome_name": f"{venue_name}:{token_id[:12]}"}
        return data

    @model_validator(mode="after")
    def check_spread_bounds(self) -> "MMConfig":
        if self.min_spread_cents > self.max_spread_cents:
            raise ValueError("min_spread_cents must not exceed max_spread_cents")
        return self

    @property
    def levels_per_side(self) -> int:
        return max(1, self.max_orders_per_side)

    @property
    def effective_level_spacing_cents(self) -> float:
        if self.level_spacing_cents is None:
            return self.base_spread_cents
        return self.level_spacing_cents

    @property
    def effective_level_size_decay(self) -> float:
        if self.level_size_decay is None:
            return DEFAULT_LEVEL_SIZE_DECAY
        return self.level_size_decay

    def replace(self, **changes: Any) -> "MMConfig":
        """Return a validated copy with ``changes`` applied.

        Venue, market and token identify the session and cannot change.
        """
        for key in ("id", "venue", "market_id", "token_id"):
            if key in changes and changes[key] != getattr(self, key):
                raise ValueError(f"{key} cannot be changed on a running session")
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown config fields: {', '.join(sorted(unknown))}")
        return type(self).model_validate({**self.model_dump(), **changes})


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON log lines instead of console output",
    )

    # Market making defaults
    mm_base_spread_cents: float = Field(default=2.0, gt=0.0, description="Base spread in cents")
    mm_min_spread_cents: float = Field(default=1.0, ge=0.0, description="Minimum spread in cents")
    mm_max_spread_cents: float = Field(default=10.0, gt=0.0, description="Maximum spread in cents")
    mm_order_size: float = Field(default=50.0, ge=1.0, description="Shares per innermost level")
    mm_max_inventory: float = Field(default=500.0, ge=0.0, description="Inventory ceiling in shares")
    mm_skew_factor: float = Field(default=0.5, ge=0.0, le=1.0, description="Inventory skew strength")
    mm_volatility_multiplier: float = Field(default=10.0, ge=0.0, description="Volatility spread multiplier")
    mm_fair_value_alpha: float = Field(default=0.3, gt=0.0, le=1.0, description="EMA smoothing factor")
    mm_fair_value_method: FairValueMethod = Field(
        default=FairValueMethod.WEIGHTED_MID,
        description="mid_price, weighted_mid, vwap or ema",
    )
    mm_requote_interval_ms: int = Field(default=5000, ge=0, description="Maximum ms between requotes")
    mm_requote_threshold_cents: float = Field(default=1.0, ge=0.0, description="Move forcing a requote")
    mm_max_position_value_usd: float = Field(default=1000.0, ge=0.0, description="Max position value")
    mm_max_loss_usd: float = Field(default=100.0, ge=0.0, description="Realized loss that halts quoting")
    mm_max_orders_per_side: int = Field(default=1, ge=1, le=20, description="Price levels per side")
    mm_level_spacing_cents: Optional[float] = Field(default=None, ge=0.0, description="Offset per level")
    mm_level_size_decay: Optional[float] = Field(default=None, gt=0.0, le=1.0, description="Size decay per level")
    mm_cancel_on_stop: bool = Field(
        default=True,
        description="If true, cancel outstanding orders when a session stops",
    )

    def build_mm_config(
        self,
        venue: Venue | str,
        market_id: str,
        token_id: str,
        **overrides: Any,
    ) -> MMConfig:
        """Build a session config from these defaults plus explicit overrides."""
        values: dict[str, Any] = {
            name[len("mm_"):]: getattr(self, name)
            for name in type(self).model_fields
            if name.startswith("mm_") and name[len("mm_"):] in MMConfig.model_fields
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        values.update(venue=venue, market_id=market_id, token_id=token_id)
        return MMConfig.model_validate(values)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
