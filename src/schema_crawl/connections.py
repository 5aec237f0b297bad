"""
Connections to the data sources a crawl can read from.

SQLite uses the standard library driver; Oracle uses oracledb, which is
only imported when an Oracle connection is requested.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Union

logger = logging.getLogger(__name__)


def parse_oracle_connection_string(connection_string: str) -> dict:
    """
    Split ``user/pwd@host:port/service`` into its parts.

    Returns:
        Dict with user, password, host, port and service (host/port/service
        are None when the part after @ is a TNS alias, returned as dsn)
    """
    parts = connection_string.split("@", 1)
    user_pwd = parts[0]
    host_service = parts[1] if len(parts) > 1 else ""

    user, password = user_pwd.split("/", 1) if "/" in user_pwd else (user_pwd, "")

    if ":" in host_service:
        host_port, service = host_service.rsplit("/", 1) if "/" in host_service else (host_service, "")
        host, port = host_port.split(":", 1)
        return {
            "user": user,
            "password": password,
            "host": host,
            "port": int(port or 1521),
            "service": service,
            "dsn": None,
        }
    return {
        "user": user,
        "password": password,
        "host": None,
        "port": None,
        "service": None,
        "dsn": host_service,
    }


def connect_oracle(connection_string: str) -> Any:
    """Open an Oracle connection from ``user/pwd@host:port/service``."""
    import oracledb

    params = parse_oracle_connection_string(connection_string)
    dsn = params["dsn"]
    if dsn is None:
        dsn = oracledb.makedsn(params["host"], params["port"], service_name=params["service"])

    conn = oracledb.connect(user=params["user"], password=params["password"], dsn=dsn)
    logger.info(f"Connected to Oracle database as {params['user']}")
    return conn


def connect_sqlite(path: Union[str, Path]) -> sqlite3.Connection:
    """Open a SQLite database file (or ":memory:")."""
    conn = sqlite3.connect(str(path))
    logger.info(f"Connected to SQLite database {path}")
    return conn
