"""
Game rule configuration and validation.
"""

from pydantic import BaseModel, Field, field_validator

from .constants import (
    CARD_LOST_DELAY, MAX_PLAYERS, MIN_PLAYERS, REVEAL_DELAY,
    ROUND_WON_DELAY, WINS_TO_WIN
)


class RuleConfig(BaseModel):
    """Configuration for game rules and pacing."""

    min_players: int = Field(
        default=MIN_PLAYERS,
        ge=3,
        le=6,
        description="Minimum number of players required to start"
    )
    max_players: int = Field(
        default=MAX_PLAYERS,
        ge=3,
        le=6,
        description="Maximum number of seats (one colour slot each)"
    )
    wins_to_win: int = Field(
        default=WINS_TO_WIN,
        ge=1,
        description="Successful challenges needed to win the game"
    )
    max_turn_timer: int = Field(
        default=300,
        ge=0,
        description="Upper bound for the per-turn timer in seconds"
    )
    reveal_delay: float = Field(
        default=REVEAL_DELAY,
        ge=0,
        description="Pause between a table-maximum bid and the revelation"
    )
    round_won_delay: float = Field(
        default=ROUND_WON_DELAY,
        ge=0,
        description="Pause between a won challenge and the next round"
    )
    card_lost_delay: float = Field(
        default=CARD_LOST_DELAY,
        ge=0,
        description="Pause between a card loss and the next round"
    )

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't fall below minimum."""
        min_players = info.data.get('min_players', MIN_PLAYERS)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    def validate_timer(self, seconds: int) -> bool:
        return 0 <= seconds <= self.max_turn_timer


# Default configuration instance
default_rules = RuleConfig()


def create_rules(**overrides) -> RuleConfig:
    """Create a RuleConfig with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return RuleConfig(**config_dict)
