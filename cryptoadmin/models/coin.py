# cryptoadmin/models/coin.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional


@dataclass
class Coin:
    """
    Catalog entry supplied by the market-data feed. Read-only here; only id,
    name and symbol matter for display, other columns are carried in `extra`.
    """
    id: str
    name: str = ""
    symbol: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Coin":
        if d is None:
            raise ValueError("Cannot construct Coin from None")
        known = {"id", "name", "symbol"}
        symbol = d.get("symbol")
        return cls(
            id=str(d.get("id") or ""),
            name=str(d.get("name") or ""),
            symbol=str(symbol) if symbol else None,
            extra={k: v for k, v in d.items() if k not in known},
        )


def index_coins(coins: Optional[Iterable[Coin]]) -> Dict[str, Coin]:
    m: Dict[str, Coin] = {}
    for c in coins or []:
        m[c.id] = c
    return m


def coin_label(coin_id: str, coin_map: Mapping[str, Coin]) -> str:
    """'Bitcoin (BTC)' when the id is in the catalog, else the raw id."""
    c = coin_map.get(coin_id)
    if c is None:
        return coin_id
    return f"{c.name} ({(c.symbol or '').upper()})"
