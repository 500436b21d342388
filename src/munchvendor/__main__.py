"""Munchvendor command line.

Examples:
  munchvendor login                  Sign in (email, password, then OTP)
  munchvendor signup                 Create a vendor account
  munchvendor status                 Show local session state
  munchvendor refresh                Exchange the refresh cookie for a new access token
  munchvendor fetch /vendors/me      Authenticated GET against the API
  munchvendor setup-store name=...   Submit the store-setup form
  munchvendor logout                 Revoke and clear the local session
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import httpx
from rich.console import Console
from rich.prompt import Prompt

from munchvendor.auth.flows import AuthFlows, FlowStep, FormOutcome
from munchvendor.auth.forms import password_strength
from munchvendor.config import get_settings
from munchvendor.logging_setup import setup_logging
from munchvendor.session.manager import SessionManager
from munchvendor.vendors import VendorClient

logger = logging.getLogger(__name__)
console = Console()


def _print_outcome(outcome: FormOutcome) -> None:
    if outcome.root_error:
        console.print(f"[red]{outcome.root_error}[/red]")
    for name, message in outcome.field_errors.items():
        console.print(f"[red]{name}: {message}[/red]")


async def _otp_loop(flows: AuthFlows) -> None:
    while flows.step is FlowStep.OTP:
        code = Prompt.ask("6-digit code (or 'resend')").strip()
        if code.lower() == "resend":
            outcome = await flows.resend_otp()
            if outcome.ok:
                console.print(f"Code resent. Next resend in {flows.cooldown.format_remaining()}.")
            elif not outcome.root_error:
                console.print(f"Resend available in {flows.cooldown.format_remaining()}.")
            _print_outcome(outcome)
            continue

        outcome = await flows.verify_otp(code)
        _print_outcome(outcome)


async def cmd_login(session: SessionManager, args: argparse.Namespace) -> int:
    flows = AuthFlows(session)
    email = args.email or Prompt.ask("Email")
    password = Prompt.ask("Password", password=True)
    outcome = await flows.login(email, password)
    _print_outcome(outcome)
    if not outcome.ok:
        return 1

    console.print(f"A code was sent to {email}.")
    await _otp_loop(flows)
    console.print(f"[green]Logged in.[/green] -> {session.navigator.location}")
    return 0


async def cmd_signup(session: SessionManager, args: argparse.Namespace) -> int:
    flows = AuthFlows(session)
    values = {
        "first_name": Prompt.ask("First name"),
        "last_name": Prompt.ask("Last name"),
        "email": args.email or Prompt.ask("Email"),
        "phone": Prompt.ask("Phone"),
    }
    values["password"] = Prompt.ask("Password", password=True)
    _, label = password_strength(values["password"])
    console.print(f"Password strength: {label}")
    values["confirm_password"] = Prompt.ask("Confirm password", password=True)

    outcome = await flows.signup(**values)
    _print_outcome(outcome)
    if not outcome.ok:
        return 1

    console.print(f"A code was sent to {values['email']}.")
    await _otp_loop(flows)
    console.print("[green]Account verified.[/green] Run 'munchvendor setup-store' next.")
    return 0


async def cmd_logout(session: SessionManager, args: argparse.Namespace) -> int:
    await session.logout()
    console.print(f"Logged out -> {session.navigator.location}")
    return 0


async def cmd_status(session: SessionManager, args: argparse.Namespace) -> int:
    console.print(f"Refresh cookie: {'present' if session.is_authenticated else 'absent'}")
    console.print(f"Access token:   {'live' if session.get_access_token() else 'absent/expired'}")
    return 0


async def cmd_refresh(session: SessionManager, args: argparse.Namespace) -> int:
    token = await session.refresh_access_token()
    if token:
        console.print("[green]Access token refreshed.[/green]")
        return 0
    result = session.last_refresh
    reason = result.error.value if result and result.error else "unknown"
    console.print(f"[red]Refresh failed ({reason}).[/red]")
    return 1


async def cmd_fetch(session: SessionManager, args: argparse.Namespace) -> int:
    body = json.loads(args.json) if args.json else None
    resp = await session.api_fetch(args.path, method=args.method.upper(), json=body)
    console.print(f"HTTP {resp.status_code}")
    try:
        console.print_json(data=resp.json())
    except ValueError:
        console.print(resp.text)
    return 0 if resp.is_success else 1


async def cmd_setup_store(session: SessionManager, args: argparse.Namespace) -> int:
    fields: dict[str, object] = {}
    for pair in args.fields:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value, got {pair!r}")
        # Repeated keys become lists (store types, service operations)
        if key in fields:
            existing = fields[key]
            fields[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            fields[key] = value

    resp = await VendorClient(session).create_business(fields, image=args.image)
    console.print(f"HTTP {resp.status_code}")
    return 0 if resp.is_success else 1


COMMANDS = {
    "login": cmd_login,
    "signup": cmd_signup,
    "logout": cmd_logout,
    "status": cmd_status,
    "refresh": cmd_refresh,
    "fetch": cmd_fetch,
    "setup-store": cmd_setup_store,
}


def build_parser() -> argparse.ArgumentParser:
    try:
        pkg_version = get_version("munchvendor")
    except PackageNotFoundError:
        pkg_version = "unknown"

    parser = argparse.ArgumentParser(
        prog="munchvendor",
        description="Munchspace vendor portal client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("\n", 2)[2],
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {pkg_version}")

    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Sign in with email, password and OTP")
    login.add_argument("--email", default=None)

    signup = sub.add_parser("signup", help="Create a vendor account")
    signup.add_argument("--email", default=None)

    sub.add_parser("logout", help="Revoke and clear the local session")
    sub.add_parser("status", help="Show local session state")
    sub.add_parser("refresh", help="Refresh the access token")

    fetch = sub.add_parser("fetch", help="Authenticated request against the API")
    fetch.add_argument("path", help="Endpoint path, e.g. /vendors/me")
    fetch.add_argument("--method", "-X", default="GET")
    fetch.add_argument("--json", default=None, help="JSON request body")

    setup = sub.add_parser("setup-store", help="Submit the store-setup form")
    setup.add_argument("fields", nargs="*", help="key=value form fields")
    setup.add_argument("--image", type=Path, default=None, help="PNG/JPEG store image (max 2MB)")

    return parser


async def _run(args: argparse.Namespace) -> int:
    async with SessionManager.persistent(get_settings()) as session:
        return await COMMANDS[args.command](session, args)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        return asyncio.run(_run(args))
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 2
    except httpx.HTTPError as e:
        console.print(f"[red]Network error:[/red] {e}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
