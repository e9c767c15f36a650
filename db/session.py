from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from core.config import settings

engine_options = {}
if not settings.DATABASE_URL.startswith("sqlite"):
    # Pool settings only apply to server databases (PostgreSQL via asyncpg)
    engine_options = dict(
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=settings.DB_POOL_SIZE,       # Base connections
        max_overflow=settings.DB_MAX_OVERFLOW, # Burst connections
    )

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    **engine_options,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_redis():
    from redis.asyncio import Redis
    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        yield redis
    finally:
        await redis.aclose()
