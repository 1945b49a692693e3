# SPDX-License-Identifier: GPL-3.0-only
"""Database connection management."""

from peewee import SqliteDatabase
from playhouse.mysql_ext import MySQLConnectorDatabase
from playhouse.shortcuts import ReconnectMixin

from base_logger import get_logger
from src.utils import ensure_database_exists, get_configs, is_production

logger = get_logger(__name__)


class ReconnectMySQLDatabase(ReconnectMixin, MySQLConnectorDatabase):
    """MySQL database that reconnects after dropped connections."""


def connect():
    """Return the database for the current MODE.

    Production uses MySQL (the database is created if missing); every other
    mode uses a local SQLite file.
    """
    if is_production():
        return connect_to_mysql()
    return connect_to_sqlite()


def connect_to_mysql():
    """Connect to the configured MySQL database."""
    host = get_configs("MYSQL_HOST", strict=True)
    user = get_configs("MYSQL_USER", strict=True)
    password = get_configs("MYSQL_PASSWORD", strict=True)
    database_name = get_configs("MYSQL_DATABASE", strict=True)

    @ensure_database_exists(host, user, password, database_name)
    def _connect():
        logger.debug("Connecting to MySQL database '%s'", database_name)
        return ReconnectMySQLDatabase(
            database_name,
            user=user,
            password=password,
            host=host,
            charset="utf8mb4",
        )

    return _connect()


def connect_to_sqlite():
    """Connect to the configured SQLite file."""
    db_path = get_configs("SQLITE_DATABASE_PATH", default_value="atomconnect.db")
    logger.debug("Connecting to SQLite database at %s", db_path)
    return SqliteDatabase(db_path, pragmas={"foreign_keys": 1})
