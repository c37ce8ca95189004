# cryptoadmin/models/session.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from cryptoadmin.models.alert import Alert, AlertSink
from cryptoadmin.models.coin import Coin


@dataclass(frozen=True)
class User:
    """Signed-in identity as asserted by the identity provider's token."""
    uid: str
    email: str = ""


@dataclass
class AdminContext:
    """
    Everything the admin page consumes from its surroundings: the session
    user, the user's own watchlist, the coin catalog and the alert sink.
    Passed in explicitly so tests can hand the page fakes.
    """
    user: Optional[User] = None
    watchlist: List[str] = field(default_factory=list)
    coins: Sequence[Coin] = field(default_factory=list)
    alerts: AlertSink = field(default_factory=AlertSink)

    @property
    def set_alert(self) -> Callable[[Alert], None]:
        return self.alerts.set_alert
