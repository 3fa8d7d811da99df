"""
Inbound action models and validation.

Actions arrive from the transport as parsed JSON and are also synthesized by
the turn supervisor; both go through ``SkullGame.handle``.
"""

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import MAX_NAME_LENGTH, CardKind


class ActionType(str, Enum):
    """Inbound action types."""
    JOIN = "join"
    LEAVE = "leave"
    START = "start"
    PLACE_CARD = "placeCard"
    CHALLENGE = "challenge"
    RAISE = "raise"
    PASS = "pass"
    REVEAL = "reveal"
    SELECT_CARD_LOSS = "selectCardLoss"
    CHOOSE_FIRST_PLAYER = "chooseFirstPlayer"
    RESET = "reset"
    PING = "ping"


class BaseAction(BaseModel):
    """Base action model."""
    model_config = ConfigDict(populate_by_name=True)

    type: ActionType


class JoinAction(BaseAction):
    type: ActionType = ActionType.JOIN
    name: str = Field(..., min_length=1)
    is_creator: bool = Field(default=False, alias="isCreator")

    @field_validator('name')
    @classmethod
    def truncate_name(cls, v):
        """Long names are cut, not rejected."""
        return v.strip()[:MAX_NAME_LENGTH]


class LeaveAction(BaseAction):
    type: ActionType = ActionType.LEAVE


class StartAction(BaseAction):
    type: ActionType = ActionType.START
    timer_duration: int = Field(default=0, alias="timerDuration")


class PlaceCardAction(BaseAction):
    type: ActionType = ActionType.PLACE_CARD
    card_type: CardKind = Field(..., alias="cardType")


class ChallengeAction(BaseAction):
    type: ActionType = ActionType.CHALLENGE
    bid: Optional[int] = None


class RaiseAction(BaseAction):
    type: ActionType = ActionType.RAISE
    bid: int


class PassAction(BaseAction):
    type: ActionType = ActionType.PASS


class RevealAction(BaseAction):
    type: ActionType = ActionType.REVEAL
    target_player_id: str = Field(..., alias="targetPlayerId")


class SelectCardLossAction(BaseAction):
    type: ActionType = ActionType.SELECT_CARD_LOSS
    card_index: int = Field(..., alias="cardIndex")


class ChooseFirstPlayerAction(BaseAction):
    type: ActionType = ActionType.CHOOSE_FIRST_PLAYER
    player_id: str = Field(..., alias="playerId")


class ResetAction(BaseAction):
    type: ActionType = ActionType.RESET


class PingAction(BaseAction):
    type: ActionType = ActionType.PING


# Union type for all inbound actions
Action = Union[
    JoinAction,
    LeaveAction,
    StartAction,
    PlaceCardAction,
    ChallengeAction,
    RaiseAction,
    PassAction,
    RevealAction,
    SelectCardLossAction,
    ChooseFirstPlayerAction,
    ResetAction,
    PingAction,
]

ACTION_MODELS = {
    ActionType.JOIN: JoinAction,
    ActionType.LEAVE: LeaveAction,
    ActionType.START: StartAction,
    ActionType.PLACE_CARD: PlaceCardAction,
    ActionType.CHALLENGE: ChallengeAction,
    ActionType.RAISE: RaiseAction,
    ActionType.PASS: PassAction,
    ActionType.REVEAL: RevealAction,
    ActionType.SELECT_CARD_LOSS: SelectCardLossAction,
    ActionType.CHOOSE_FIRST_PLAYER: ChooseFirstPlayerAction,
    ActionType.RESET: ResetAction,
    ActionType.PING: PingAction,
}


def parse_action(data: Dict[str, Any]) -> Action:
    """
    Parse raw message data into the matching action model.

    Args:
        data: Decoded JSON object from the client

    Returns:
        Parsed action model

    Raises:
        ValueError: If the type is unknown or the payload is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Message must be a JSON object")

    action_type = data.get("type")
    if not action_type:
        raise ValueError("Missing action type")

    try:
        action_type = ActionType(action_type)
    except ValueError:
        raise ValueError(f"Invalid action type: {action_type}")

    try:
        return ACTION_MODELS[action_type].model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid action data: {e}") from e
