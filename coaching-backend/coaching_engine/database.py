"""Database connection and session management using SQLAlchemy async ORM"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from redis import asyncio as aioredis

from coaching_engine.config import get_settings

settings = get_settings()

DATABASE_URL = settings.database_url
REDIS_URL = settings.redis_url


def build_engine(url: str, **kwargs):
    """
    Create an async engine for the given URL.

    Pool sizing only applies to server databases; SQLite uses the
    dialect's default pool.
    """
    if url.startswith("postgresql"):
        # pool_size=20: Keep 20 connections alive in the pool
        # max_overflow=30: Allow 30 additional connections under load (total 50 max)
        # pool_recycle=3600: Recycle connections every hour to prevent stale connections
        kwargs.setdefault("pool_size", 20)
        kwargs.setdefault("max_overflow", 30)
        kwargs.setdefault("pool_recycle", 3600)
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, echo=False, **kwargs)


def build_session_factory(bind) -> async_sessionmaker:
    """Create an async session factory bound to an engine"""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(DATABASE_URL)

# Create async session factory
AsyncSessionLocal = build_session_factory(engine)

# Base class for declarative models
Base = declarative_base()

# Redis client (initialized on app startup)
redis_client: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize Redis connection with async client"""
    global redis_client
    redis_client = aioredis.from_url(
        REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    return redis_client


async def close_redis():
    """Close Redis connection"""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


def get_redis() -> Optional[aioredis.Redis]:
    """
    Dependency for FastAPI endpoints to get Redis client.

    Returns None until init_redis() has run.
    """
    return redis_client
