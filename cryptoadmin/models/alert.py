# cryptoadmin/models/alert.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any, List
import logging

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"


@dataclass(frozen=True)
class Alert:
    """Transient notice shown to the admin. Owned by the sink, produced by the page."""
    message: str
    type: str = SUCCESS
    open: bool = True

    @classmethod
    def success(cls, message: str) -> "Alert":
        return cls(message=message, type=SUCCESS)

    @classmethod
    def error(cls, message: str) -> "Alert":
        return cls(message=message, type=ERROR)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AlertSink:
    """
    Collects the alerts raised for one admin session. Fire-and-forget from the
    producer's side: set_alert returns nothing.
    """

    def __init__(self):
        self.history: List[Alert] = []

    def set_alert(self, alert: Alert) -> None:
        if alert.type == ERROR:
            logger.warning("Admin alert (%s): %s", alert.type, alert.message)
        else:
            logger.info("Admin alert (%s): %s", alert.type, alert.message)
        self.history.append(alert)
