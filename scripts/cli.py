# SPDX-License-Identifier: GPL-3.0-only
"""Atom Connect CLI"""

import argparse
import sys

from base_logger import get_logger
from src.db_models import ALL_MODELS, User
from src.otp_store import DatabaseOTPStore, normalize_email
from src.types import UserRole
from src.utils import create_tables, get_configs, hash_password

logger = get_logger("cli")

PRIVILEGED_ROLES = (UserRole.ADMIN.value, UserRole.MAINTAINER.value)


def create_user(email, role, name=None):
    """Create a privileged account (admins and maintainers only)."""

    if role not in PRIVILEGED_ROLES:
        logger.error("Role must be one of: %s", ", ".join(PRIVILEGED_ROLES))
        sys.exit(1)

    email = normalize_email(email)
    create_tables(ALL_MODELS)

    if User.get_or_none(User.email == email):
        logger.info("User with this email already exists.")
        sys.exit(0)

    password = get_configs("DEFAULT_PASSWORD", strict=True)
    User.create(
        email=email,
        password_hash=hash_password(password),
        name=name or "",
        role=role,
    )

    logger.info("%s account created successfully", role)
    sys.exit(0)


def clear_otp(email=None):
    """Clear pending codes from the database-backed store."""
    create_tables(ALL_MODELS)
    removed = DatabaseOTPStore().clear(email)
    logger.info("Removed %d OTP records", removed)
    sys.exit(0)


def main(argv=None):
    """Entry function"""

    parser = argparse.ArgumentParser(description="Atom Connect CLI")
    subparsers = parser.add_subparsers(dest="command", description="Expected commands")

    create_parser = subparsers.add_parser(
        "create-user", help="Creates an admin or maintainer account."
    )
    create_parser.add_argument(
        "-e", "--email", type=str, help="Account email address.", required=True
    )
    create_parser.add_argument(
        "-r",
        "--role",
        type=str.upper,
        choices=PRIVILEGED_ROLES,
        help="Account role.",
        required=True,
    )
    create_parser.add_argument("-n", "--name", type=str, help="Display name.")

    clear_parser = subparsers.add_parser(
        "clear-otp", help="Clears pending verification codes."
    )
    clear_parser.add_argument(
        "-e", "--email", type=str, help="Only clear this email's code."
    )

    args = parser.parse_args(argv)

    if args.command == "create-user":
        create_user(email=args.email, role=args.role, name=args.name)
    elif args.command == "clear-otp":
        clear_otp(email=args.email)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
