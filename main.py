#!/usr/bin/env python3
"""
Natours -- authentication and access-control service.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py create-admin --name "Admin" --email admin@natours.io

Environment variables (or .env):
  SECRET_KEY      Required unless DEBUG=true. At least 32 characters.
  ENVIRONMENT     "production" marks the session cookie secure-only.
  DATABASE_URL    SQLAlchemy URL of the user database.
  EMAIL_HOST ...  SMTP relay for password-reset emails (see core/config.py).

This is the single error boundary of the process. A failure that escapes the
server (bad configuration, a crash in startup, anything uvicorn re-raises) is
logged once at CRITICAL and the process exits with status 1, leaving the
restart to the supervisor instead of limping on with state that can no
longer be trusted.
"""

import argparse
import getpass
import logging
import sys

from pydantic import ValidationError as SettingsError

logger = logging.getLogger("natours.main")


def _serve(args: argparse.Namespace) -> None:
    import uvicorn

    from api.main import create_app
    from core.config import get_settings

    app = create_app(get_settings())
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")


def _create_admin(args: argparse.Namespace) -> None:
    """Bootstrap an admin account -- signup never grants a privileged role."""
    from auth.models import Role
    from auth.passwords import PasswordHasher
    from auth.service import AuthService, check_new_password
    from auth.store import UserStore
    from auth.tokens import TokenIssuer
    from core.config import get_settings

    settings = get_settings()
    password = getpass.getpass("Password: ")
    check_new_password(password, getpass.getpass("Confirm password: "))

    store = UserStore(settings.database_url)
    try:
        service = AuthService(
            store,
            PasswordHasher(rounds=settings.bcrypt_rounds),
            TokenIssuer(settings.secret_key, settings.token_expire_seconds),
        )
        result = service.signup(args.name, args.email, password, password)
        store.update_user(result.user.id, role=Role.ADMIN)
    finally:
        store.close()
    print(f"  [+] Admin {args.email} created (id={result.user.id})")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Natours authentication service")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=_serve)

    admin = sub.add_parser("create-admin", help="Create an admin account")
    admin.add_argument("--name", required=True)
    admin.add_argument("--email", required=True)
    admin.set_defaults(func=_create_admin)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    from auth.errors import AppError

    try:
        args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except SettingsError as exc:
        logger.critical("Invalid configuration, refusing to start:\n%s", exc)
        return 1
    except AppError as exc:
        print(f"  [!] {exc.message}")
        return 1
    except Exception:
        logger.critical("Fatal error, shutting down", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
