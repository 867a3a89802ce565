# arcms/passwords.py
"""
PBKDF2-SHA256 admin password hashing.

Also a small command line tool printing the environment values for a new
password, usable before the rest of the configuration exists::

    webar-hash-password --iterations 310000
"""

import argparse
import getpass
import hashlib
import secrets
import sys

from django.utils.crypto import pbkdf2

PASSWORD_HASH_BYTES = 32
DEFAULT_ITERATIONS = 310000


def hash_password(password, salt, iterations):
    """Hex PBKDF2-HMAC-SHA256 of password, 32-byte key."""
    derived = pbkdf2(password, salt, iterations, dklen=PASSWORD_HASH_BYTES, digest=hashlib.sha256)
    return derived.hex()


def make_salt():
    return secrets.token_hex(16)


def env_lines(password, salt=None, iterations=DEFAULT_ITERATIONS):
    salt = salt or make_salt()
    return [
        f"ADMIN_PASSWORD_HASH={hash_password(password, salt, iterations)}",
        f"ADMIN_PASSWORD_SALT={salt}",
        f"ADMIN_PASSWORD_ITERATIONS={iterations}",
    ]


def main(argv=None):
    parser = argparse.ArgumentParser(description="Hash the WebAR admin password")
    parser.add_argument("--salt", help="salt to use (random when omitted)")
    parser.add_argument("--iterations", type=int, default=DEFAULT_ITERATIONS)
    parser.add_argument("--password", help="password (prompted when omitted)")
    args = parser.parse_args(argv)

    if args.iterations <= 0:
        parser.error("--iterations must be positive")

    password = args.password
    if password is None:
        password = getpass.getpass("Admin password: ")
        if password != getpass.getpass("Repeat password: "):
            print("Passwords do not match", file=sys.stderr)
            return 1
    if not password:
        print("Password must not be empty", file=sys.stderr)
        return 1

    for line in env_lines(password, args.salt, args.iterations):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
