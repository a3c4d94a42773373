"""Crypto market stats tile using CoinGecko API."""

from typing import Any, Dict, Tuple

from ..core.registry import TransformStrategy

REQUIRED_PARAMS = ["coin_id"]


def build_request(params: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    coin_id = params["coin_id"]
    query = {
        "localization": "false",
        "tickers": "false",
        "market_data": "true",
        "community_data": "false",
        "developer_data": "false",
    }
    return f"https://api.coingecko.com/api/v3/coins/{coin_id}", query


def validate(raw: Any) -> bool:
    return (
        isinstance(raw, dict)
        and isinstance(raw.get("name"), str)
        and isinstance(raw.get("symbol"), str)
        and isinstance(raw.get("market_data"), dict)
    )


def transform(raw: Dict[str, Any]) -> Dict[str, Any]:
    market_data = raw["market_data"]

    return {
        "coin_id": raw.get("id"),
        "name": raw["name"],
        "symbol": raw["symbol"].upper(),
        "market_cap": market_data["market_cap"]["usd"],
        "total_supply": market_data.get("total_supply"),
        "circulating_supply": market_data.get("circulating_supply"),
        "max_supply": market_data.get("max_supply"),
        "ath": {
            "price": market_data["ath"]["usd"],
            "date": market_data["ath_date"]["usd"],
        },
        "atl": {
            "price": market_data["atl"]["usd"],
            "date": market_data["atl_date"]["usd"],
        },
        "price_change_24h_percent": market_data.get("price_change_percentage_24h") or 0,
        "market_cap_rank": raw.get("market_cap_rank"),
    }


strategy = TransformStrategy(validate=validate, transform=transform)
