"""Rule-engine error taxonomy.

Every resolver reports failures by raising one of these. The caller maps
them onto its transport: ``ValidationError`` is the caller's input,
``StateConflict`` means the snapshot it holds no longer allows the action,
``ConfigurationError`` is a server-side fault.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GameRuleError(Exception):
    error_code = "game_rule_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": dict(self.details),
        }

    def __str__(self) -> str:
        return self.message


class ValidationError(GameRuleError, ValueError):
    error_code = "validation_error"


class ConfigurationError(GameRuleError):
    error_code = "configuration_error"


class StateConflict(GameRuleError, RuntimeError):
    error_code = "state_conflict"


class NoActiveBattle(StateConflict):
    error_code = "no_active_battle"


class InsufficientFunds(StateConflict):
    error_code = "insufficient_funds"


class LimitReached(StateConflict):
    error_code = "limit_reached"


class RequirementNotMet(StateConflict):
    error_code = "requirement_not_met"


class PlayerJailed(StateConflict):
    error_code = "player_jailed"
