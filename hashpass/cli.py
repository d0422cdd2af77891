"""HashPass command-line interface.

Usage examples:
    python -m hashpass derive example -u alice
    python -m hashpass derive "my bank" -n 16 --symbols --copy
    python -m hashpass check example -p "blue horse"
    python -m hashpass settings --length 12 --no-symbols
"""

import argparse
import getpass
import logging
import sys
from dataclasses import replace

from hashpass import (
    DerivationInput,
    DigestUnavailable,
    InvalidConfiguration,
    ValidationError,
    derive,
    hasher_for,
    validate_input,
    validate_length,
)
from hashpass.settings import SettingsStore, copy_to_clipboard

_CLASS_FLAGS = ("uppercase", "lowercase", "numbers", "symbols")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="hashpass",
        description="Derive reproducible site passwords from a master secret.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log debug output to stderr",
    )
    parser.add_argument(
        "--settings", metavar="FILE",
        help="Settings file (default: ~/.config/hashpass/settings.json)",
    )
    sub = parser.add_subparsers(dest="command")

    # ── derive ─────────────────────────────────────────────────────────
    derive_p = sub.add_parser("derive", help="Derive the password for a site")
    _add_field_arguments(derive_p)
    derive_p.add_argument(
        "-n", "--length", type=int,
        help="Password length, 4-50 (default: from settings)",
    )
    _add_class_arguments(derive_p)
    derive_p.add_argument(
        "-c", "--copy", action="store_true",
        help="Copy the password to the clipboard instead of printing it",
    )
    derive_p.add_argument(
        "--digest", default="sha256",
        help="hashlib algorithm used for derivation (default: sha256)",
    )

    # ── check ──────────────────────────────────────────────────────────
    check_p = sub.add_parser("check", help="Validate the input fields only")
    _add_field_arguments(check_p)

    # ── settings ───────────────────────────────────────────────────────
    settings_p = sub.add_parser("settings", help="Show or change stored settings")
    settings_p.add_argument("-n", "--length", type=int, help="Password length, 4-50")
    _add_class_arguments(settings_p)
    settings_p.add_argument(
        "--reset", action="store_true",
        help="Restore the default settings",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    store = SettingsStore(args.settings)

    if args.command == "derive":
        return _cmd_derive(args, store)
    if args.command == "check":
        return _cmd_check(args)
    if args.command == "settings":
        return _cmd_settings(args, store)

    parser.print_help()
    return 0


def _add_field_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("site", help="Website name")
    p.add_argument("-u", "--username", default="", help="Username (optional)")
    p.add_argument("-p", "--phrase", default="", help="Extra phrase (optional)")


def _add_class_arguments(p: argparse.ArgumentParser) -> None:
    for flag in _CLASS_FLAGS:
        p.add_argument(
            f"--{flag}", action=argparse.BooleanOptionalAction, default=None,
            help=f"Include {flag} (default: from settings)",
        )


def _class_overrides(args: argparse.Namespace) -> dict:
    changes = {
        flag: getattr(args, flag)
        for flag in _CLASS_FLAGS
        if getattr(args, flag) is not None
    }
    if args.length is not None:
        changes["length"] = args.length
    return changes


def _read_input(args: argparse.Namespace) -> DerivationInput:
    secret = getpass.getpass("Master password: ")
    return DerivationInput(
        site=args.site,
        username=args.username,
        secret=secret,
        phrase=args.phrase,
    )


def _print_errors(messages: list[str]) -> None:
    for message in messages:
        print(f"  Invalid   {message}", file=sys.stderr)


def _cmd_derive(args: argparse.Namespace, store: SettingsStore) -> int:
    try:
        config = replace(store.load(), **_class_overrides(args)).checked()
    except ValidationError as exc:
        _print_errors([str(exc)])
        return 1

    data = _read_input(args)
    result = validate_input(data)
    if not result.is_valid:
        _print_errors(result.messages())
        return 1

    try:
        password = derive(data, config, hasher_for(args.digest))
    except InvalidConfiguration as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except DigestUnavailable as exc:
        print(f"Error generating password: {exc}", file=sys.stderr)
        return 2

    if args.copy:
        if copy_to_clipboard(password):
            print("  Password copied to clipboard")
            return 0
        print("  Clipboard unavailable, select the password below:", file=sys.stderr)

    print(f"  {password}")
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    data = _read_input(args)
    result = validate_input(data)

    for name in ("site", "username", "secret", "phrase"):
        if result.field_valid(name):
            print(f"  Valid     {name}")
        else:
            print(f"  Invalid   {result.errors[name]}")

    return 0 if result.is_valid else 1


def _cmd_settings(args: argparse.Namespace, store: SettingsStore) -> int:
    if args.reset:
        config = store.reset()
    else:
        changes = _class_overrides(args)
        if "length" in changes:
            try:
                validate_length(changes["length"])
            except ValidationError as exc:
                _print_errors([str(exc)])
                return 1
        config = store.update(**changes) if changes else store.load()

    for key, value in config.as_dict().items():
        if isinstance(value, bool):
            value = "on" if value else "off"
        print(f"  {key:<10}{value}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
