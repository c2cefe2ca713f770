"""Helpers for database connection strings.

Deployments hand us DSNs in whatever form their other services use
(``postgresql+psycopg2://`` from SQLAlchemy apps, ``postgres://`` from hosted
providers). Tortoise ORM wants ``asyncpg://`` for PostgreSQL and understands
``sqlite://`` as is.
"""

from __future__ import annotations


def to_postgres_dsn(url: str) -> str:
    """Strip a SQLAlchemy driver suffix and return a plain ``postgresql://`` DSN."""

    if url.startswith("postgresql+"):
        return "postgresql://" + url.split("://", 1)[1]
    if url.startswith("asyncpg://"):
        return "postgresql://" + url[len("asyncpg://") :]
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://") :]
    return url


def to_tortoise_url(url: str) -> str:
    """Convert any supported DSN into the scheme Tortoise expects.

    Non-PostgreSQL URLs (``sqlite://...``) pass through untouched.
    """

    url = to_postgres_dsn(url)
    if url.startswith("postgresql://"):
        return "asyncpg://" + url[len("postgresql://") :]
    return url
