"""Crypto price tile using Gemini API."""

from typing import Any, Dict, Tuple

from ..core.registry import TransformStrategy

REQUIRED_PARAMS = ["symbol"]


def build_request(params: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Ticker endpoint for a trading pair (e.g., "btcusd")."""
    symbol = str(params["symbol"]).lower()
    return f"https://api.gemini.com/v1/pubticker/{symbol}", {}


def validate(raw: Any) -> bool:
    if not isinstance(raw, dict):
        return False
    if not all(field in raw for field in ("last", "bid", "ask", "volume")):
        return False
    return isinstance(raw["volume"], dict)


def transform(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Extract price, spread and volume from a Gemini ticker.

    The volume object is keyed by currency, base first, quote second,
    plus a ``timestamp`` in epoch milliseconds.
    """
    volume = raw["volume"]
    currencies = [k for k in volume if k != "timestamp"]
    if len(currencies) != 2:
        raise ValueError(f"Expected base and quote volume, got {currencies}")
    base, quote = currencies

    return {
        "symbol": f"{base}{quote}".upper(),
        "price": float(raw["last"]),
        "bid": float(raw["bid"]),
        "ask": float(raw["ask"]),
        "volume": {
            "base": float(volume[base]),
            "quote": float(volume[quote]),
        },
        "exchange_timestamp": volume.get("timestamp"),
    }


strategy = TransformStrategy(validate=validate, transform=transform)
