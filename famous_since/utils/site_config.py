"""
Redis mirror of ``site_config_table``.

The whole table lives in one hash (``CACHE_KEY``), one JSON value per setting.
The deployment gate reads it on every request, so a miss or an unreachable
Redis falls through to the database instead of failing the request.
"""
import json
from typing import Any, Dict

from redis.exceptions import RedisError

from .extensions import redis_client
from .logging import get_logger

log = get_logger(__name__)

CACHE_KEY = "famous_since:site_config"
CACHE_TTL = 60 * 60


def _load_from_db() -> Dict[str, Any]:
    from famous_since.models import models

    return {row.key: row.value for row in models.SiteConfig.get(order_by="key")}


def cache_config() -> Dict[str, Any]:
    """Replace the cached hash with the database rows and return them."""
    configs = _load_from_db()
    pipe = redis_client.client.pipeline()
    pipe.delete(CACHE_KEY)
    if configs:
        pipe.hset(CACHE_KEY, mapping={key: json.dumps(value) for key, value in configs.items()})
        pipe.expire(CACHE_KEY, CACHE_TTL)
    pipe.execute()
    log.info("Cached %d site setting(s)", len(configs))
    return configs


def get_config(key: str, default: Any = None) -> Any:
    try:
        raw = redis_client.client.hget(CACHE_KEY, key)
    except RedisError as e:
        log.warning("Site config cache unreachable, reading %s from the database: %s", key, e)
        return _load_from_db().get(key, default)

    if raw is not None:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Dropping unreadable cached value for %s", key)

    try:
        configs = cache_config()
    except RedisError as e:
        log.warning("Could not refresh site config cache: %s", e)
        configs = _load_from_db()
    return configs.get(key, default)


def invalidate_config_cache(key: str | None = None) -> None:
    """Forget one cached setting, or all of them when ``key`` is None."""
    if key:
        redis_client.client.hdel(CACHE_KEY, key)
    else:
        redis_client.client.delete(CACHE_KEY)
    log.debug("Invalidated site config cache (%s)", key or "all")
