import asyncio
import sys
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings
from core.logger import setup_logging, logger
from services.expiry_service import sweep_expired_attempts

async def start_api():
    import uvicorn
    from api.main import app
    config = uvicorn.Config(app, host="0.0.0.0", port=8000, log_level=settings.LOG_LEVEL.lower())
    server = uvicorn.Server(config)
    await server.serve()

def start_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone=ZoneInfo(settings.SCHEDULER_TIMEZONE))

    # Expiry sweeper: auto-submits attempts past their time limit
    scheduler.add_job(
        sweep_expired_attempts,
        trigger=IntervalTrigger(seconds=settings.EXPIRY_SWEEP_INTERVAL_SECONDS),
        id=settings.EXPIRY_SWEEP_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info("Scheduler started (Expiry sweeper).", interval=settings.EXPIRY_SWEEP_INTERVAL_SECONDS)
    return scheduler

async def main():
    # Parse mode from CLI args first
    mode = "all"
    if len(sys.argv) > 1:
        if "api" in sys.argv: mode = "api"
        elif "worker" in sys.argv: mode = "worker"

    setup_logging()

    if mode == "api":
        # For scaling, run 'uvicorn api.main:app' directly and keep one worker process
        logger.info("Starting API Only Mode...", env=settings.ENV)
        await start_api()
        return

    scheduler = start_scheduler()
    try:
        if mode == "worker":
            logger.info("Starting Worker Mode...", env=settings.ENV)
            await asyncio.Event().wait()
        else:  # mode == "all"
            logger.info("Starting All (API + Worker)...", env=settings.ENV)
            await start_api()
    finally:
        scheduler.shutdown(wait=False)

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Application stopped.")
