from __future__ import annotations
import json

import redis
from config.settings import settings

_redis_client: redis.Redis | None = None

STATE_KEY_FMT = "oauth_state:{state}"
STATE_TTL_SECONDS = 10 * 60


def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def save_oauth_state(client, state: str, payload: dict, ttl: int = STATE_TTL_SECONDS) -> None:
    client.setex(STATE_KEY_FMT.format(state=state), ttl, json.dumps(payload))


def load_oauth_state(client, state: str) -> dict | None:
    raw = client.get(STATE_KEY_FMT.format(state=state))
    if not raw:
        return None
    return json.loads(raw)
