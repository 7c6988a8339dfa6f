import json
import redis.asyncio as async_redis
from angler_seasons.core.config import settings

def create_redis() -> async_redis.Redis:
    return async_redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        decode_responses=True
    )

async def publish_event(redis_client, event: dict, channel: str = None):
    # Redis Pub/Sub 기반 이벤트 발행
    if channel is None:
        channel = settings.LEADERBOARD_EVENTS_CHANNEL
    await redis_client.publish(channel, json.dumps(event, default=str))
