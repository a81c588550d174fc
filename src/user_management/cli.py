"""
Command line client for the user store.

    user-management-cli list
    user-management-cli get --id 3
    user-management-cli create -u alice -f Alice -l Smith -e alice@x.com -s A [-d Sales]
    user-management-cli update --id 3 -s I
    user-management-cli delete --id 3

Uses the database from the regular settings (environment / .env) and the same
`UserService` rules as the HTTP API. Results are printed as camelCase JSON on
stdout; errors go to stderr with exit status 1.
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from user_management.config.settings import Settings, get_settings
from user_management.core.logging import setup_logging, stop_queue_logging
from user_management.database.session import build_engine, build_session_maker
from user_management.exceptions.base import AppError
from user_management.models.user import User
from user_management.repositories.user_repository import UserRepository
from user_management.schemas.user import UserCreateRequest, UserRead, UserUpdateRequest
from user_management.services.user_service import UserService

logger = logging.getLogger(__name__)

# editable attributes, in payload order
FIELD_ATTRS = ("user_name", "first_name", "last_name", "email", "user_status", "department")


def positive_id(value: str) -> int:
    try:
        user_id = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid user id: {value!r}") from None
    if user_id <= 0:
        raise argparse.ArgumentTypeError("invalid user id: must be greater than 0")
    return user_id


def _add_id_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-i", "--id", type=positive_id, required=True, help="User id")


def _add_field_options(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("-u", "--username", dest="user_name", required=required, help="Username")
    parser.add_argument("-f", "--first-name", dest="first_name", required=required, help="First name")
    parser.add_argument("-l", "--last-name", dest="last_name", required=required, help="Last name")
    parser.add_argument("-e", "--email", dest="email", required=required, help="Email address")
    parser.add_argument("-s", "--status", dest="user_status", required=required, help="User status: A, I or T")
    parser.add_argument("-d", "--department", dest="department", help="Department")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="user-management-cli", description="Manage users in the user store.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="List all users")

    get = commands.add_parser("get", help="Get a user by id")
    _add_id_option(get)

    create = commands.add_parser("create", help="Create a new user")
    _add_field_options(create, required=True)

    update = commands.add_parser("update", help="Update a user; omitted fields keep their current value")
    _add_id_option(update)
    _add_field_options(update, required=False)

    delete = commands.add_parser("delete", help="Delete a user by id")
    _add_id_option(delete)

    return parser


def _dump(user: User) -> dict:
    return UserRead.model_validate(user).model_dump(mode="json", by_alias=True)


def _given_fields(args: argparse.Namespace) -> dict:
    return {attr: getattr(args, attr) for attr in FIELD_ATTRS if getattr(args, attr) is not None}


async def cmd_list(service: UserService, args: argparse.Namespace) -> list[dict]:
    return [_dump(user) for user in await service.list()]


async def cmd_get(service: UserService, args: argparse.Namespace) -> dict:
    return _dump(await service.get(args.id))


async def cmd_create(service: UserService, args: argparse.Namespace) -> dict:
    user = await service.create(UserCreateRequest(**_given_fields(args)))
    return _dump(user)


async def cmd_update(service: UserService, args: argparse.Namespace) -> dict:
    current = UserRead.model_validate(await service.get(args.id))
    values = current.model_dump(include=set(FIELD_ATTRS))
    values.update(_given_fields(args))

    user = await service.update(args.id, UserUpdateRequest(**values))
    return _dump(user)


async def cmd_delete(service: UserService, args: argparse.Namespace) -> None:
    await service.delete(args.id)


COMMANDS = {
    "list": cmd_list,
    "get": cmd_get,
    "create": cmd_create,
    "update": cmd_update,
    "delete": cmd_delete,
}


async def execute(args: argparse.Namespace, session_maker: async_sessionmaker[AsyncSession]) -> Any:
    """Run one parsed command in its own session and return what should be printed."""
    async with session_maker() as session:
        service = UserService(UserRepository(session))
        result = await COMMANDS[args.command](service, args)

    logger.info("cli.command.success", extra={"command": args.command})
    return result


async def _run(args: argparse.Namespace, settings: Settings) -> Any:
    engine = build_engine(settings)
    try:
        return await execute(args, build_session_maker(engine))
    finally:
        await engine.dispose()


def report_error(exc: AppError) -> None:
    payload = exc.to_payload()
    print(f"error: {payload['detail']}", file=sys.stderr)
    for detail in payload.get("errors", []):
        print(f"  {detail['field']}: {detail['message']}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(settings.model_copy(update={"LOG_LEVEL": "DEBUG" if args.verbose else "WARNING"}))

    try:
        result = asyncio.run(_run(args, settings))
    except AppError as exc:
        report_error(exc)
        return 1
    finally:
        stop_queue_logging()

    if result is not None:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
