#!/usr/bin/env python3
"""
Print a bcrypt hash for the coach/admin password.
Put the output in ADMIN_PASSWORD_HASH (and the email in ADMIN_EMAIL).

Usage:
    python create_admin_password_hash.py <password>

Example:
    python create_admin_password_hash.py mypassword123
"""

import sys
from passlib.context import CryptContext

# Same hashing context as coachbook/routers/auth.py
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print(__doc__)
        return 1

    password = argv[1]
    if len(password) < 8:
        print("❌ Password must be at least 8 characters")
        return 1

    print(pwd_context.hash(password))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
