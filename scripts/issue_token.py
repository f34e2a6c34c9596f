#!/usr/bin/env python3
"""Issue a development access token for a front-desk or admin user."""

import argparse
import sys
from datetime import timedelta

from app.core.security import UserRole, create_access_token


def main() -> int:
    """Print a signed access token for the given user."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("user_id", type=int, help="User ID placed in the token subject")
    parser.add_argument(
        "--role",
        choices=[role.value for role in UserRole],
        default=UserRole.FRONTDESK.value,
    )
    parser.add_argument("--minutes", type=int, default=60, help="Token lifetime in minutes")
    args = parser.parse_args()

    token = create_access_token(
        {"sub": str(args.user_id), "role": args.role},
        expires_delta=timedelta(minutes=args.minutes),
    )
    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
