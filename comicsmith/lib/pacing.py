# comicsmith/lib/pacing.py
import asyncio

from comicsmith.logger import get_logger

log = get_logger(__name__)


async def pause(seconds: float) -> None:
    """Cooperative wait used for inter-job delays, poll intervals and retry back-off."""
    if seconds <= 0:
        return
    log.debug(f"waiting {seconds:.1f}s")
    await asyncio.sleep(seconds)
