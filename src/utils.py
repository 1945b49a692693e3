# SPDX-License-Identifier: GPL-3.0-only
"""Utilities module."""

import os
import re
from functools import wraps
from typing import Any, Callable, List, Optional

import mysql.connector
from peewee import DatabaseError

from base_logger import get_logger
from src.crypto import hash_password_argon2id

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

logger = get_logger(__name__)


def create_tables(models: List[Any]) -> None:
    """Create tables for given Peewee models if they don't exist.

    Args:
        models: List of Peewee Model classes.
    """
    if not models:
        logger.warning("No models provided for table creation.")
        return

    try:
        databases = {}
        for model in models:
            database = model._meta.database
            if database not in databases:
                databases[database] = []
            databases[database].append(model)

        for database, db_models in databases.items():
            with database.atomic():
                existing_tables = set(database.get_tables())
                tables_to_create = [
                    model
                    for model in db_models
                    if model._meta.table_name not in existing_tables
                ]

                if tables_to_create:
                    database.create_tables(tables_to_create)
                    logger.info(
                        "Created tables: %s",
                        [model._meta.table_name for model in tables_to_create],
                    )
                else:
                    logger.debug("No new tables to create.")

    except DatabaseError as e:
        logger.error("An error occurred while creating tables: %s", e)


def ensure_database_exists(
    host: str, user: str, password: str, database_name: str
) -> Callable:
    """Decorator to ensure MySQL database exists before function execution.

    Args:
        host: MySQL server host address.
        user: MySQL username.
        password: MySQL password.
        database_name: Database name.

    Returns:
        Decorated function.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                with mysql.connector.connect(
                    host=host,
                    user=user,
                    password=password,
                    charset="utf8mb4",
                    collation="utf8mb4_unicode_ci",
                ) as connection:
                    with connection.cursor() as cursor:
                        sql = "CREATE DATABASE IF NOT EXISTS " + database_name
                        cursor.execute(sql)

            except mysql.connector.Error as error:
                logger.error("Failed to create database: %s", error)

            return func(*args, **kwargs)

        return wrapper

    return decorator


def get_configs(config_name: str, strict: bool = False, default_value: str = "") -> str:
    """Retrieve configuration from environment variables.

    Args:
        config_name: Configuration name.
        strict: If True, raises error if not found.
        default_value: Default value if not found and not strict.

    Returns:
        Configuration value.

    Raises:
        KeyError: If strict is True and config not found.
        ValueError: If strict is True and value is empty.
    """
    try:
        value = (
            os.environ[config_name]
            if strict
            else os.environ.get(config_name) or default_value
        )
        if strict and (value is None or value.strip() == ""):
            raise ValueError(f"Configuration '{config_name}' is missing or empty.")
        return value
    except KeyError as error:
        logger.error(
            "Configuration '%s' not found in environment variables: %s",
            config_name,
            error,
        )
        raise
    except ValueError as error:
        logger.error("Configuration '%s' is empty: %s", config_name, error)
        raise


def get_bool_config(key: str, default_value: bool = False) -> bool:
    """Retrieve config value as boolean.

    Args:
        key: Configuration key.
        default_value: Default if missing or invalid.

    Returns:
        Boolean value.
    """
    value = get_configs(key)
    if not value:
        return default_value

    value = value.strip().lower()
    if value in {"true", "1", "yes", "on"}:
        return True
    elif value in {"false", "0", "no", "off"}:
        return False
    return default_value


def get_int_config(key: str, default_value: int) -> int:
    """Retrieve config value as integer, falling back on bad input."""
    value = get_configs(key)
    if not value:
        return default_value
    try:
        return int(value)
    except ValueError:
        logger.warning(
            "Configuration '%s' is not an integer, using %d", key, default_value
        )
        return default_value


def get_list_config(key: str, default_value: Optional[List[str]] = None) -> List[str]:
    """Retrieve config value as list of lowercase strings.

    Args:
        key: Configuration key.
        default_value: Default if missing.

    Returns:
        List of strings.
    """
    value = get_configs(key)
    if not value:
        return default_value or []

    items = value.strip("[]")
    return [c.strip().strip("'\"").lower() for c in items.split(",") if c.strip()]


def set_configs(config_name: str, config_value: Any) -> None:
    """Set environment variable configuration.

    Args:
        config_name: Configuration name.
        config_value: Configuration value.

    Raises:
        ValueError: If config_name is empty.
    """
    if not config_name:
        error_message = (
            f"Cannot set configuration. Invalid config_name '{config_name}'."
        )
        logger.error(error_message)
        raise ValueError(error_message)

    try:
        if isinstance(config_value, bool):
            config_value = str(config_value).lower()
        os.environ[config_name] = str(config_value)
    except Exception as error:
        logger.error("Failed to set configuration '%s': %s", config_name, error)
        raise


def is_production() -> bool:
    """Whether the service runs in production mode."""
    return get_configs("MODE", default_value="development").lower() == "production"


def is_debug_enabled() -> bool:
    """Debug affordances are never available in production."""
    return get_bool_config("OTP_DEBUG_ENABLED") and not is_production()


def is_valid_email(email: str) -> bool:
    """Check an email address against a loose ``local@domain.tld`` shape."""
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def hash_password(password: str) -> str:
    """Hash a password with Argon2id and the configured pepper."""
    pepper = get_configs("PASSWORD_PEPPER", strict=True)
    return hash_password_argon2id(pepper.encode("utf-8"), password)

