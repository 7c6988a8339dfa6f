from datetime import datetime
from typing import Callable, Optional
import pytz

Clock = Callable[[], datetime]

def utcnow() -> datetime:
    return datetime.now(pytz.utc)

def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    SQLite 등에서 naive datetime으로 돌아오는 값을 UTC aware로 맞춥니다.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)
