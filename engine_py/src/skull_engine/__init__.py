"""
Authoritative rules engine for the Skull bluffing game.
"""

from .engine import SkullGame
from .rules import RuleConfig, default_rules

__all__ = ["SkullGame", "RuleConfig", "default_rules"]
