from typing import Optional
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.logger import logger
from db.session import AsyncSessionLocal
from services.attempt_service import AttemptService

async def sweep_expired_attempts(session_factory: Optional[async_sessionmaker] = None) -> int:
    """
    Scheduled task that runs every EXPIRY_SWEEP_INTERVAL_SECONDS.
    Auto-submits attempts that outlived their quiz time limit.
    """
    session_factory = session_factory or AsyncSessionLocal
    logger.debug("Starting expired attempt sweep...")

    async with session_factory() as db:
        try:
            submitted = await AttemptService(db).auto_submit_expired()
        except Exception as e:
            await db.rollback()
            logger.error("Expired attempt sweep failed", error=str(e), exc_info=True)
            raise

    if submitted:
        logger.info(f"Sweep: auto-submitted {submitted} expired attempts")
    else:
        logger.debug("Sweep: no expired attempts")
    return submitted
