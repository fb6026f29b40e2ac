from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from docsafe.core.config import settings

# Convert postgresql:// to postgresql+asyncpg:// for async driver
database_url = settings.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

connect_args = {}
if "+asyncpg" in database_url:
    # Supabase's pooler rejects prepared statement caching
    connect_args["statement_cache_size"] = 0

engine = create_async_engine(
    database_url,
    echo=settings.DB_ECHO,
    future=True,
    pool_pre_ping=True,
    connect_args=connect_args,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)
