"""Command-line host for Echoes.

Provides subcommands for accounts, memories and simulated visits.
"""

import argparse
import asyncio
import getpass
import sys
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable

from .app import EchoesApp
from .config import config_from_env
from .memory import Memory
from .notifications import LocalNotificationCenter, Notification

AppCommand = Callable[[EchoesApp, argparse.Namespace], Awaitable[int]]


def _run_with_app(handler: AppCommand, args: argparse.Namespace) -> int:
    """Run a command against a started app, closing it afterwards."""

    async def runner() -> int:
        app = EchoesApp(config_from_env())
        await app.start()
        try:
            return await handler(app, args)
        finally:
            await app.close()

    return asyncio.run(runner())


def _format_memory(memory: Memory) -> str:
    """Format one memory as a list row."""
    flags = ("P" if memory.has_photo else "-") + ("V" if memory.has_voice_note else "-")
    date = memory.display_date.strftime("%Y-%m-%d %H:%M")
    title = memory.display_title
    if len(title) > 30:
        title = title[:27] + "..."
    return f"{(memory.id or '')[:8]:<10} {date:<17} {flags:<3} {title:<30} {memory.display_location_name}"


def _print_memories(memories: list[Memory]) -> None:
    if not memories:
        print("No memories found.")
        return

    print(f"\n{'ID':<10} {'Date':<17} {'':<3} {'Title':<30} Place")
    print("-" * 80)
    for memory in memories:
        print(_format_memory(memory))
    print(f"\nTotal: {len(memories)} memory(ies)")


def _require_user(app: EchoesApp) -> bool:
    if not app.auth.is_authenticated:
        print("Error: Not signed in. Use 'echoes login' or 'echoes signup' first.")
        return False
    return True


def _resolve_memory(app: EchoesApp, id_or_prefix: str) -> Memory | None:
    """Find a memory by full id or unique id prefix."""
    memory = app.memories.find(id_or_prefix)
    if memory is not None:
        return memory
    matches = [m for m in app.memories.memories if m.id and m.id.startswith(id_or_prefix)]
    return matches[0] if len(matches) == 1 else None


def _password(args: argparse.Namespace) -> str:
    return args.password if args.password is not None else getpass.getpass("Password: ")


async def _signup(app: EchoesApp, args: argparse.Namespace) -> int:
    ok, error = app.auth.sign_up(args.name, args.email, _password(args))
    if not ok:
        print(f"Error: {error}")
        return 1
    print(f"Welcome, {app.auth.current_user.name}!")
    return 0


async def _login(app: EchoesApp, args: argparse.Namespace) -> int:
    ok, error = app.auth.login(args.email, _password(args))
    if not ok:
        print(f"Error: {error}")
        return 1
    print(f"Signed in as {app.auth.current_user.email}")
    return 0


async def _logout(app: EchoesApp, args: argparse.Namespace) -> int:
    app.auth.logout()
    print("Signed out.")
    return 0


async def _add(app: EchoesApp, args: argparse.Namespace) -> int:
    if not _require_user(app):
        return 1

    try:
        event_date = datetime.fromisoformat(args.date) if args.date else None
    except ValueError:
        print(f"Error: Invalid date '{args.date}'. Use ISO 8601, e.g. 2024-05-01T18:30")
        return 1

    try:
        photo = Path(args.photo).read_bytes() if args.photo else None
        voice_note = Path(args.voice_note).read_bytes() if args.voice_note else None
    except OSError as e:
        print(f"Error: Cannot read file: {e}")
        return 1

    ok = await app.create_memory(
        args.title,
        args.latitude,
        args.longitude,
        description=args.description or "",
        event_date=event_date,
        location_name=args.place,
        photo=photo,
        voice_note=voice_note,
    )
    if not ok:
        print(f"Error: {app.memories.error_message}")
        return 1

    print(f"Saved memory: {args.title.strip()}")
    print(f"Watching {len(app.geofence.monitored_region_ids)} place(s)")
    return 0


async def _list(app: EchoesApp, args: argparse.Namespace) -> int:
    if not _require_user(app):
        return 1
    _print_memories(app.memories.memories)
    return 0


async def _search(app: EchoesApp, args: argparse.Namespace) -> int:
    if not _require_user(app):
        return 1
    _print_memories(app.memories.search(args.query))
    return 0


async def _delete(app: EchoesApp, args: argparse.Namespace) -> int:
    if not _require_user(app):
        return 1

    memory = _resolve_memory(app, args.id)
    if memory is None:
        print(f"Error: Memory '{args.id}' not found.")
        return 1

    if not app.memories.delete(memory):
        print(f"Error: {app.memories.error_message}")
        return 1
    print(f"Deleted memory: {memory.display_title}")
    return 0


async def _stats(app: EchoesApp, args: argparse.Namespace) -> int:
    if not _require_user(app):
        return 1
    memories = app.memories
    print(f"Memories:    {memories.memory_count()}")
    print(f"Places:      {memories.location_count()}")
    print(f"Photos:      {memories.photo_count()}")
    print(f"Voice notes: {memories.voice_note_count()}")
    return 0


async def _visit(app: EchoesApp, args: argparse.Namespace) -> int:
    """Move the simulated device and report unlocked memories."""
    if not _require_user(app):
        return 1

    def show(notification: Notification) -> None:
        memory = app.memories.find(notification.memory_id or "")
        place = memory.display_title if memory is not None else notification.memory_id
        print(f"🔔 {notification.title}: {notification.body} ({place})")

    if isinstance(app.notifications, LocalNotificationCenter):
        app.notifications.add_handler(show)

    move_to = getattr(app.provider, "move_to", None)
    if move_to is None:
        print("Error: Location provider cannot be moved.")
        return 1

    move_to(args.latitude, args.longitude)
    await app.geofence.drain()

    if app.geofence.error_message:
        print(f"Warning: {app.geofence.error_message}")
    return 0


def cmd_signup(args: argparse.Namespace) -> int:
    """Create an account."""
    return _run_with_app(_signup, args)


def cmd_login(args: argparse.Namespace) -> int:
    return _run_with_app(_login, args)


def cmd_logout(args: argparse.Namespace) -> int:
    return _run_with_app(_logout, args)


def cmd_add(args: argparse.Namespace) -> int:
    """Save a new memory."""
    return _run_with_app(_add, args)


def cmd_list(args: argparse.Namespace) -> int:
    return _run_with_app(_list, args)


def cmd_search(args: argparse.Namespace) -> int:
    return _run_with_app(_search, args)


def cmd_delete(args: argparse.Namespace) -> int:
    return _run_with_app(_delete, args)


def cmd_stats(args: argparse.Namespace) -> int:
    return _run_with_app(_stats, args)


def cmd_visit(args: argparse.Namespace) -> int:
    """Simulate arriving at a coordinate."""
    return _run_with_app(_visit, args)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the Echoes CLI."""
    parser = argparse.ArgumentParser(
        prog="echoes",
        description="Capture memories tied to places",
    )

    subparsers = parser.add_subparsers(dest="command", help="Sub-command help")

    signup_parser = subparsers.add_parser("signup", help="Create a local account")
    signup_parser.add_argument("name", help="Display name")
    signup_parser.add_argument("email", help="Email address")
    signup_parser.add_argument("-p", "--password", help="Password (prompted if omitted)")

    login_parser = subparsers.add_parser("login", help="Sign in")
    login_parser.add_argument("email", help="Email address")
    login_parser.add_argument("-p", "--password", help="Password (prompted if omitted)")

    subparsers.add_parser("logout", help="Sign out")

    add_parser = subparsers.add_parser("add", help="Save a memory")
    add_parser.add_argument("title", help="Memory title")
    add_parser.add_argument("latitude", type=float, help="Latitude in degrees")
    add_parser.add_argument("longitude", type=float, help="Longitude in degrees")
    add_parser.add_argument("-d", "--description", help="Description")
    add_parser.add_argument("--place", help="Place name (reverse geocoded if omitted)")
    add_parser.add_argument("--date", help="Event date, ISO 8601 (default: now)")
    add_parser.add_argument("--photo", help="Path to an image file")
    add_parser.add_argument("--voice-note", help="Path to an audio file")

    subparsers.add_parser("list", help="List memories, most recent first")

    search_parser = subparsers.add_parser("search", help="Search memories")
    search_parser.add_argument("query", help="Text to look for")

    delete_parser = subparsers.add_parser("delete", help="Delete a memory")
    delete_parser.add_argument("id", help="Memory id or unique id prefix")

    subparsers.add_parser("stats", help="Show memory statistics")

    visit_parser = subparsers.add_parser("visit", help="Simulate arriving at a place")
    visit_parser.add_argument("latitude", type=float, help="Latitude in degrees")
    visit_parser.add_argument("longitude", type=float, help="Longitude in degrees")

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Run the CLI with given arguments.

    Args:
        argv: Command-line arguments. Uses sys.argv[1:] if None.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "signup": cmd_signup,
        "login": cmd_login,
        "logout": cmd_logout,
        "add": cmd_add,
        "list": cmd_list,
        "search": cmd_search,
        "delete": cmd_delete,
        "stats": cmd_stats,
        "visit": cmd_visit,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    return handler(args)


if __name__ == "__main__":
    sys.exit(run_cli())
