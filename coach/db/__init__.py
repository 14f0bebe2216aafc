"""Database Infrastructure: SQLAlchemy Base shared by every ORM model.

Design Decisions:
    - asyncpg driver for PostgreSQL, aiosqlite in tests
"""
