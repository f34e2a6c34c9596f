#!/usr/bin/env python3
"""Apply, roll back or inspect schema migrations for the scheduling tables."""

import argparse
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

PROJECT_ROOT = Path(__file__).parent.parent


def alembic_config() -> Config:
    """Alembic configuration resolved from the project root."""
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    return cfg


def main() -> int:
    """Run the requested migration command."""
    parser = argparse.ArgumentParser(description=__doc__)
    subcommands = parser.add_subparsers(dest="command")

    upgrade = subcommands.add_parser("upgrade", help="Upgrade to a revision (default: head)")
    upgrade.add_argument("revision", nargs="?", default="head")

    downgrade = subcommands.add_parser("downgrade", help="Downgrade to a revision")
    downgrade.add_argument("revision")

    subcommands.add_parser("current", help="Show the current revision")

    create = subcommands.add_parser("create", help="Autogenerate a new revision")
    create.add_argument("message", nargs="+")

    args = parser.parse_args()
    cfg = alembic_config()

    try:
        if args.command == "downgrade":
            print(f"Downgrading database to {args.revision}...")
            command.downgrade(cfg, args.revision)
        elif args.command == "current":
            command.current(cfg, verbose=True)
        elif args.command == "create":
            message = " ".join(args.message)
            print(f"Creating migration: {message}")
            command.revision(cfg, message=message, autogenerate=True)
        else:
            revision = getattr(args, "revision", "head")
            print(f"Upgrading database to {revision}...")
            command.upgrade(cfg, revision)
    except Exception as e:
        print(f"✗ Migration command failed: {e}", file=sys.stderr)
        return 1

    print("✓ Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
