"""HackerNews posts tile using Algolia Search API.

Required params:
    - query: Search query (e.g., "bitcoin", "ai", "python")

Optional params:
    - limit: Number of posts to show (default: 8)
    - min_points: Minimum points threshold for quality filter (default: 10)
    - sort_by: Sort order - "date" or "relevance" (default: "date")
"""

from typing import Any, Dict, List, Tuple

from ..core.registry import TransformStrategy

REQUIRED_PARAMS = ["query"]

HN_ITEM_URL = "https://news.ycombinator.com/item?id={}"


def build_request(params: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    limit = params.get("limit", 8)
    min_points = params.get("min_points", 10)
    sort_by = params.get("sort_by", "date")

    if sort_by == "relevance":
        url = "https://hn.algolia.com/api/v1/search"
    else:  # default to date
        url = "https://hn.algolia.com/api/v1/search_by_date"

    query = {
        "query": params["query"],
        "tags": "story",
        "hitsPerPage": limit,
    }
    if min_points > 0:
        query["numericFilters"] = f"points>{min_points}"
    return url, query


def validate(raw: Any) -> bool:
    return isinstance(raw, dict) and isinstance(raw.get("hits"), list)


def transform(raw: Dict[str, Any]) -> Dict[str, Any]:
    posts: List[Dict[str, Any]] = []
    for hit in raw["hits"]:
        hn_url = HN_ITEM_URL.format(hit["objectID"])
        posts.append({
            "title": hit["title"],
            # Ask HN and similar posts have no external link
            "url": hit.get("url") or hn_url,
            "hn_url": hn_url,
            "author": hit.get("author"),
            "points": hit.get("points") or 0,
            "num_comments": hit.get("num_comments") or 0,
            "created_at": hit.get("created_at"),
            "object_id": hit["objectID"],
        })

    return {
        "posts": posts,
        "total_hits": raw.get("nbHits", len(posts)),
    }


strategy = TransformStrategy(validate=validate, transform=transform)
