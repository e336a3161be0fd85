import os
import time
import psycopg2
from dotenv import load_dotenv
from typing import Any, Dict, List, Optional, Tuple
from .paths import get_base_dir, get_config_path


# The env file may live in the project root or in src/ when running from source
_ENV_CANDIDATES = [
    os.path.abspath(get_config_path('db.env')),
    os.path.abspath(os.path.join(get_base_dir(), 'src', 'db.env')),
]
ENV_PATH = next((p for p in _ENV_CANDIDATES if os.path.exists(p)), _ENV_CANDIDATES[0])
load_dotenv(ENV_PATH, override=False)

MAX_ATTEMPTS = 3
STATEMENT_TIMEOUT_MS = 15000


def get_db_connection():
    """
    Opens a connection to the Moodle database with a connect timeout and SSL mode.
    """
    host = os.getenv("MOODLE_DB_HOST")
    if not host:
        tried = ', '.join(_ENV_CANDIDATES)
        raise ValueError(f"Database credentials not found. Checked env files: {tried}")

    return psycopg2.connect(
        host=host,
        dbname=os.getenv("MOODLE_DB_NAME"),
        user=os.getenv("MOODLE_DB_USER"),
        password=os.getenv("MOODLE_DB_PASSWORD"),
        port=os.getenv("MOODLE_DB_PORT", "5432"),
        sslmode=os.getenv("MOODLE_DB_SSLMODE", "prefer"),
        connect_timeout=10
    )


def _is_transient(error: Exception) -> bool:
    message = str(error).lower()
    return "timeout" in message or "lock" in message


def _safe_rollback(conn) -> None:
    # a dropped connection cannot roll back; keep the original error visible
    try:
        conn.rollback()
    except psycopg2.Error as e:
        print(f"[DB ERROR] rollback failed: {e}")


def fetch_all(conn, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Tuple]:
    """
    Runs a read-only query and returns every row.
    Lock and timeout errors are retried; anything else is reported and re-raised.
    """
    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            with conn.cursor() as cur:
                cur.execute(f"SET statement_timeout = {STATEMENT_TIMEOUT_MS};")
                cur.execute(sql, params or {})
                rows = cur.fetchall()
            conn.rollback()  # end the read transaction
            return rows
        except Exception as e:
            _safe_rollback(conn)
            if _is_transient(e) and attempt < MAX_ATTEMPTS:
                time.sleep(1)
                continue
            print(f"[DB ERROR] {e}")
            raise
