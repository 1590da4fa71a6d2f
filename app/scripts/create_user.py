"""
Create a user (e.g. first admin). Run from project root:
  python -m app.scripts.create_user USERNAME PASSWORD [--name NAME] [--role ROLE]
Example:
  python -m app.scripts.create_user admin 'Your-Secure-Passw0rd' --role Admin
"""
import argparse
import asyncio
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.errors import ConfigurationError
from app.core.result import Ok
from app.core.security import BcryptPasswordHasher, SigningConfig, TokenIssuer
from app.schemas.auth import RegisterRequest
from app.services.auth import AuthService
from app.services.roles import RoleRegistry, resolve_role_name
from app.services.users import SqlUserStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


async def create_user(request: RegisterRequest) -> int:
    settings = get_settings()
    hasher = BcryptPasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    tokens = TokenIssuer(SigningConfig.from_settings(settings))
    async with SessionLocal() as db:
        service = AuthService(
            users=SqlUserStore(db, hasher),
            roles=RoleRegistry(db),
            hasher=hasher,
            tokens=tokens,
            default_role=settings.DEFAULT_ROLE,
        )
        if not await service.is_unique_user(request.username):
            print(f"User '{request.username.strip()}' already exists.", file=sys.stderr)
            return 1
        result = await service.register(request)
    if isinstance(result, Ok):
        role = resolve_role_name(request.role, settings.DEFAULT_ROLE)
        print(f"Created user '{result.value.username}' ({result.value.id}) with role '{role}'.")
        return 0
    for reason in result.error.errors:
        print(reason, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a user account from the command line.")
    parser.add_argument("username", help="Username (1-255 chars)")
    parser.add_argument("password", help="Password (8-128 chars, upper, lower and a digit)")
    parser.add_argument("--name", default=None, help="Display name")
    parser.add_argument("--role", default=None, help="Role to assign (defaults to DEFAULT_ROLE)")
    args = parser.parse_args(argv)

    username = args.username.strip()
    if not username or len(username) > 255:
        print("Invalid username length.", file=sys.stderr)
        return 1

    try:
        return asyncio.run(
            create_user(
                RegisterRequest(
                    username=username,
                    password=args.password,
                    name=args.name,
                    role=args.role,
                )
            )
        )
    except ConfigurationError as e:
        logger.error("Cannot create user: %s", e.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
