import ssl as _ssl
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from shared.config import settings


def _normalize_url(url: str) -> str:
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    # asyncpg takes ssl as a connect_arg, not a query param
    return url.split("?sslmode=")[0] if "?sslmode=" in url else url


def _connect_args(url: str) -> dict:
    if "supabase" in url:
        ssl_ctx = _ssl.create_default_context()
        ssl_ctx.check_hostname = False
        ssl_ctx.verify_mode = _ssl.CERT_NONE
        return {"ssl": ssl_ctx}
    return {}


def create_engine_for(url: str):
    """Build an async engine; sqlite URLs skip the pool sizing asyncpg wants."""
    url = _normalize_url(url)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.LOG_LEVEL == "DEBUG")
    return create_async_engine(
        url,
        echo=settings.LOG_LEVEL == "DEBUG",
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        connect_args=_connect_args(url),
    )


engine = create_engine_for(settings.DATABASE_URL) if settings.DATABASE_URL else None

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
) if engine else None


async def get_db():
    if async_session is None:
        raise RuntimeError("Database not configured. Set DATABASE_URL in .env")
    async with async_session() as session:
        yield session
