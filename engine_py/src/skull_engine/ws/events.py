"""
WebSocket message encoding and decoding.
"""

from typing import Any, Dict

import orjson

from ..actions import Action, parse_action


def decode_action(raw: str) -> Action:
    """
    Decode one text frame into an action.

    Raises:
        ValueError: If the frame is not JSON or not a valid action
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ValueError(f"Malformed JSON: {e}") from e
    return parse_action(data)


def encode_message(message: Dict[str, Any]) -> str:
    return orjson.dumps(message).decode()
