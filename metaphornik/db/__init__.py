"""Database Infrastructure — SQLAlchemy declarative Base.

Invariants:
    - One async engine per process (owned by DatabaseSessionManager)
    - All sessions are async (AsyncSession)

Design Decisions:
    - aiosqlite for local/dev, asyncpg for PostgreSQL (native async drivers, no thread pool)
"""
