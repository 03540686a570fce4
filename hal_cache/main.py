"""
Inspection entry point for the HAL cache.

Loads a resource through a cache instance and prints its stored data,
relations and, for collections, the URIs of its items.

Run from package root:
    python -m hal_cache.main /camps/1

The API base URL comes from config.yaml or HAL_API_BASE_URL.
"""
import asyncio
import json
import logging
import sys
from typing import Any

from .config_loader import config
from .hal_client import HalCache
from .resources import Collection

# Configure logging for the application
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def inspect_resource(cache: HalCache, uri: str) -> dict[str, Any]:
    """
    Load uri (and the items of a collection) and describe it.

    Returns:
        Dict with the store key, the stored fields, the relation names and,
        for collections, the store keys of all items
    """
    view = await cache.get(uri).meta.load
    summary: dict[str, Any] = {
        "uri": view.meta.uri,
        "self_url": view.meta.self_url,
        "fields": view.to_dict(),
        "relations": view.relation_names(),
    }
    if isinstance(view, Collection):
        collection = await view.load_items()
        summary["items"] = [item.meta.uri for item in collection.all_items]
    return summary


async def _run(uri: str) -> None:
    logger.info("API base URL: %s", config.base_url or "(none)")
    cache = HalCache()
    summary = await inspect_resource(cache, uri)
    print(json.dumps(summary, indent=2, default=str))


if __name__ == "__main__":
    asyncio.run(_run(sys.argv[1] if len(sys.argv) > 1 else ""))
