import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

SideEffect = Callable[[], Awaitable[object]]


class SideEffectResult(BaseModel):
    name: str
    success: bool
    error: Optional[str] = None


async def _run_one(name: str, effect: SideEffect, timeout: Optional[float]) -> SideEffectResult:
    try:
        if timeout is not None:
            await asyncio.wait_for(effect(), timeout=timeout)
        else:
            await effect()
        return SideEffectResult(name=name, success=True)
    except asyncio.TimeoutError:
        logger.error(f"❌ Side effect '{name}' timed out after {timeout}s")
        return SideEffectResult(name=name, success=False, error="timeout")
    except Exception as e:
        logger.error(f"❌ Side effect '{name}' failed: {e}")
        return SideEffectResult(name=name, success=False, error=str(e))


async def run_side_effects(effects: Dict[str, SideEffect], timeout: Optional[float] = None) -> List[SideEffectResult]:
    """
    서로 독립적인 부수 효과(업적/배지/리더보드/알림)를 동시에 실행합니다.
    실패는 로그로만 남기고 호출자에게 전파하지 않습니다.
    """
    if not effects:
        return []
    results = await asyncio.gather(
        *(_run_one(name, effect, timeout) for name, effect in effects.items())
    )
    return list(results)
