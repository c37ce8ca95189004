from __future__ import annotations
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone


class InvalidTransition(ValueError):
    pass


HistoryEntry = Dict[str, Any]


class StateMachine:
    """
    Small state machine over an allowed-transitions map, recording history.

    Usage:
      sm = StateMachine(state="idle", allowed_transitions=ANNOUNCEMENT_TRANSITIONS)
      sm.apply("loading")
      sm.apply("ready", meta={"error": "..."})
    """

    def __init__(self, state: str, allowed_transitions: Dict[str, List[str]],
                 history: Optional[List[HistoryEntry]] = None, max_history: int = 50):
        self.state = state or ""
        self.allowed_transitions = allowed_transitions or {}
        self.history: List[HistoryEntry] = list(history or [])
        self.max_history = max_history

    def can_transition(self, to_state: str) -> bool:
        allowed = self.allowed_transitions.get(self.state, [])
        return to_state in allowed

    def apply(self, to_state: str, meta: Optional[Dict[str, Any]] = None) -> str:
        """
        Move to `to_state`. Staying in the current state is a no-op.
        Raises InvalidTransition for anything the map does not allow.
        """
        to_state = (to_state or "").strip()
        if not to_state:
            raise InvalidTransition("Empty target state")

        if to_state == self.state:
            return self.state

        if not self.can_transition(to_state):
            raise InvalidTransition(f"Invalid transition: {self.state} -> {to_state}")

        self.history.append({
            "from": self.state,
            "to": to_state,
            "at": datetime.now(timezone.utc).isoformat(sep=" "),
            "meta": dict(meta or {}),
        })
        # bounded: a long-lived admin session toggles states indefinitely
        if len(self.history) > self.max_history:
            del self.history[: len(self.history) - self.max_history]
        self.state = to_state
        return self.state
