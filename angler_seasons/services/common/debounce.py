import asyncio
import logging
from typing import Awaitable, Callable, Dict, Set

logger = logging.getLogger(__name__)


class KeyedDebouncer:
    """
    key(시즌 id)별로 지연 실행을 하나로 합칩니다.
    - 대기 중에 같은 key로 다시 schedule 하면 무시 (한 번만 실행)
    - 실행 중에 schedule 되면 끝난 뒤 한 번 더 실행
    """

    def __init__(self, callback: Callable[[str], Awaitable[object]], delay: float = 1.0):
        self.callback = callback
        self.delay = delay
        self._pending: Dict[str, asyncio.Task] = {}
        self._running: Set[str] = set()
        self._rerun: Set[str] = set()

    def schedule(self, key: str) -> bool:
        if key in self._pending:
            if key in self._running:
                self._rerun.add(key)
            return False
        self._pending[key] = asyncio.create_task(self._run(key))
        return True

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    async def _run(self, key: str):
        try:
            while True:
                await asyncio.sleep(self.delay)
                self._rerun.discard(key)
                self._running.add(key)
                try:
                    await self.callback(key)
                except Exception as e:
                    logger.error(f"❌ Debounced task failed for {key}: {e}")
                finally:
                    self._running.discard(key)
                if key not in self._rerun:
                    break
        finally:
            self._pending.pop(key, None)

    async def wait_idle(self):
        while self._pending:
            await asyncio.gather(*list(self._pending.values()), return_exceptions=True)

    def cancel_all(self):
        for task in self._pending.values():
            task.cancel()
        self._pending.clear()
        self._running.clear()
        self._rerun.clear()
