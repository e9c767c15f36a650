import asyncio
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.logger import setup_logging, logger
from services.expiry_service import sweep_expired_attempts

async def run_sweep():
    """One-off run of the expiry sweeper, e.g. after the worker was down."""
    setup_logging()
    try:
        submitted = await sweep_expired_attempts()
    except Exception as e:
        print(f"❌ Sweep failed: {e}")
        logger.error(f"Manual sweep failed: {e}")
        sys.exit(1)
    print(f"✅ Auto-submitted {submitted} expired attempt(s).")

if __name__ == "__main__":
    if os.name == 'nt':
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(run_sweep())
