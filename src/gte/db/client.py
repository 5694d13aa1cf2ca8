"""Database connection helpers."""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import psycopg
from psycopg.rows import dict_row

from gte.config import Settings


def get_connection(settings: Optional[Settings] = None) -> psycopg.Connection:
    """Create a new database connection."""
    settings = settings or Settings()
    return psycopg.connect(settings.get_database_url())


@contextmanager
def db_cursor(
    settings: Optional[Settings] = None,
    as_dict: bool = False,
) -> Iterator[psycopg.Cursor[Any]]:
    """Yield a cursor with automatic commit/rollback."""
    conn = get_connection(settings)
    try:
        with conn.cursor(row_factory=dict_row if as_dict else None) as cursor:
            yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
