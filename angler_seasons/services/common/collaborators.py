from abc import ABC, abstractmethod
from typing import Optional

import httpx
import redis.asyncio as async_redis

from angler_seasons.core.cache import publish_event
from angler_seasons.core.config import settings


class AchievementTracker(ABC):

    @abstractmethod
    async def track_event(self, user_id: str, event_type: str, payload: dict, notify: bool = True):
        pass


class BadgeChecker(ABC):

    @abstractmethod
    async def check_badges_after_activity(self, user_id: str, activity_type: str, payload: dict):
        pass


class LeaderboardService(ABC):

    @abstractmethod
    async def update_for_user_activity(self, user_id: str, activity_type: str, payload: dict):
        pass

    @abstractmethod
    async def invalidate_cache(self, cache_key: str):
        pass


class HttpAchievementTracker(AchievementTracker):
    """업적 API(/api/achievements/track)로 이벤트를 전달합니다."""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        self.url = url or settings.ACHIEVEMENTS_API_URL
        self.timeout = timeout if timeout is not None else settings.INTEGRATION_TIMEOUT_SECONDS

    async def track_event(self, user_id: str, event_type: str, payload: dict, notify: bool = True):
        body = {"userId": user_id, "eventType": event_type, "payload": payload, "notify": notify}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json=body)
            response.raise_for_status()


class HttpBadgeChecker(BadgeChecker):

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        self.url = url or settings.BADGES_API_URL
        self.timeout = timeout if timeout is not None else settings.INTEGRATION_TIMEOUT_SECONDS

    async def check_badges_after_activity(self, user_id: str, activity_type: str, payload: dict):
        body = {"userId": user_id, "activityType": activity_type, "payload": payload}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json=body)
            response.raise_for_status()


class RedisLeaderboardService(LeaderboardService):
    """
    리더보드 캐시는 Redis 키(competition:{id})로 관리하고,
    실시간 갱신은 Pub/Sub 채널로 알립니다.
    """

    def __init__(self, redis_client: async_redis.Redis, channel: Optional[str] = None):
        self._redis = redis_client
        self._channel = channel or settings.LEADERBOARD_EVENTS_CHANNEL

    async def update_for_user_activity(self, user_id: str, activity_type: str, payload: dict):
        await publish_event(self._redis, {
            "type": "user_activity",
            "user_id": user_id,
            "activity_type": activity_type,
            "payload": payload,
        }, channel=self._channel)

    async def invalidate_cache(self, cache_key: str):
        await self._redis.delete(cache_key)
