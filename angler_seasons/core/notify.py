import logging
from typing import Optional

import httpx
from angler_seasons.core.config import settings

logger = logging.getLogger(__name__)

async def send_ntfy_notification(message: str, title: str = "Angler Seasons Alert", priority: str = "default"):
    """
    ntfy를 통해 관리자 알림을 전송합니다.
    :param message: 알림 본문
    :param title: 알림 제목
    :param priority: 알림 우선순위 (max, high, default, low, min)
    """
    if not settings.NTFY_ENABLED or not settings.NTFY_TOPIC:
        return

    url = f"{settings.NTFY_URL}/{settings.NTFY_TOPIC}"
    headers = {
        "Title": title,
        "Priority": priority,
        "Tags": "warning" if priority in ["high", "max"] else "information_source"
    }

    try:
        async with httpx.AsyncClient(timeout=settings.INTEGRATION_TIMEOUT_SECONDS) as client:
            await client.post(url, data=message.encode("utf-8"), headers=headers)
    except Exception as e:
        logger.error(f"Failed to send ntfy notification: {e}")


class NotificationDispatcher:
    """
    사용자 알림 엔드포인트로 {userId, type, data}를 POST 합니다.
    전송은 fire-and-forget: 실패는 로그만 남기고 재시도하지 않습니다.
    """

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.url = url or settings.NOTIFICATIONS_URL
        self.timeout = timeout if timeout is not None else settings.INTEGRATION_TIMEOUT_SECONDS
        self._client = client

    async def send(self, user_id: str, notification_type: str, data: dict) -> bool:
        payload = {"userId": user_id, "type": notification_type, "data": data}
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
            return True
        except Exception as e:
            logger.error(f"❌ Error sending {notification_type} notification to {user_id}: {e}")
            return False
