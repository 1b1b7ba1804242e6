# PYTHON_ARGCOMPLETE_OK

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import argcomplete  # type: ignore

from .collection import RecordCollection
from .config import ConfigError, EtcConfig, load_config
from .constants import FILE_ENCODING, FILE_ERRORS
from .database import EtcDatabase
from .errors import (
    EtcUtilsError,
    LockError,
    NotFoundError,
    ParseError,
    PermissionDeniedError,
    UnsupportedError,
    ValidationError,
)
from .platform import KINDS
from .records import parse_file, record_type
from .utils import is_skippable
from .version import __version__

g_verbose: bool = False

# Database name -> EtcDatabase collection attribute
DATABASE_COLLECTIONS = dict(
    passwd="users",
    group="groups",
    shadow="shadow",
    gshadow="gshadow",
)

EXIT_NOT_FOUND = 1
EXIT_INVALID = 2
EXIT_UNSUPPORTED = 69
EXIT_LOCKED = 75
EXIT_PERMISSION = 77
EXIT_ERROR = 128


def appmsg(msg: str) -> None:
    print("etcutils: " + msg, file=sys.stderr)


def parse_etcutils_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    def _names_completer(
        parsed_args: argparse.Namespace, **kwargs: Any
    ) -> Sequence[str]:
        try:
            db = _open_database(parsed_args)
            return [r.name for r in _collection(db, parsed_args.database)]
        except EtcUtilsError:
            return []

    ap = argparse.ArgumentParser(
        prog="etcutils",
        description="Inspect and safely rewrite the local account databases",
    )
    ap.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Config file to load (default: $ETCUTILS_CONFIG)",
    )
    ap.add_argument(
        "--root",
        type=Path,
        help="Directory the database files are relative to (default: /)",
    )
    ap.add_argument(
        "-v", "--version", action="version", version="etcutils " + __version__
    )
    ap.add_argument("-V", "--verbose", action="store_true", help="Be verbose")

    sub = ap.add_subparsers(dest="subcommand", metavar="COMMAND")
    sub.required = True

    sub.add_parser("capabilities", help="Show what this platform supports")

    p = sub.add_parser("list", help="Print every entry of a database")
    p.add_argument("database", choices=DATABASE_COLLECTIONS)

    p = sub.add_parser("show", help="Print the fields of one entry")
    p.add_argument("database", choices=DATABASE_COLLECTIONS)
    name_arg = p.add_argument("name", help="Entry name")
    name_arg.completer = _names_completer  # type: ignore[attr-defined]

    p = sub.add_parser("check", help="Check that a database file parses")
    p.add_argument("database", choices=DATABASE_COLLECTIONS)
    p.add_argument(
        "file", nargs="?", type=Path, help="File to check (default: the database)"
    )

    p = sub.add_parser("apply", help="Replace a database with the entries of FILE")
    p.add_argument("database", choices=DATABASE_COLLECTIONS)
    p.add_argument("file", type=Path, help="File holding the complete new database")
    p.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Don't write anything; show what would change",
    )
    p.add_argument(
        "--no-backup",
        dest="backup",
        action="store_false",
        default=None,
        help="Don't keep the previous file as <file>-",
    )
    p.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for the database lock",
    )

    p = sub.add_parser("next-id", help="Print the lowest unused uid or gid")
    p.add_argument("kind", choices=("uid", "gid"))
    p.add_argument("--start", type=int, default=0, help="Lowest id to consider")

    argcomplete.autocomplete(ap, always_complete_options=False)
    args = ap.parse_args(argv)

    global g_verbose
    g_verbose = args.verbose

    return args


def _load_config(args: argparse.Namespace) -> EtcConfig:
    config = load_config(args.config)
    if args.root is not None:
        config = dataclasses.replace(config, root=args.root)
    if getattr(args, "timeout", None) is not None:
        config = dataclasses.replace(config, lock_timeout=args.timeout)
    return config


def _open_database(args: argparse.Namespace) -> EtcDatabase:
    return EtcDatabase(config=_load_config(args))


def _collection(db: EtcDatabase, database: str) -> RecordCollection:
    return getattr(db, DATABASE_COLLECTIONS[database])


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(value)
    if isinstance(value, dict):
        return " ".join(f"{k}={_format_value(v)}" for k, v in value.items())
    return str(value)


def cmd_capabilities(db: EtcDatabase, args: argparse.Namespace) -> int:
    caps = db.capabilities()
    print(f"os: {caps['os']} {caps['os_version']}")
    print(f"version: {caps['version']}")
    for kind in KINDS:
        access = [a for a in ("read", "write") if caps[kind][a]]
        print(f"{kind}: {', '.join(access) or 'none'}")
    print(f"locking: {'yes' if caps['locking'] else 'no'}")
    return 0


def cmd_list(db: EtcDatabase, args: argparse.Namespace) -> int:
    for record in _collection(db, args.database):
        print(record.to_entry())
    return 0


def cmd_show(db: EtcDatabase, args: argparse.Namespace) -> int:
    record = _collection(db, args.database).fetch(args.name)
    for key, value in record.to_dict(compact=True).items():
        print(f"{key}: {_format_value(value)}")
    return 0


def cmd_check(db: EtcDatabase, args: argparse.Namespace) -> int:
    path = args.file or db.config.path_for(args.database)
    rtype = record_type(args.database)

    problems = 0
    count = 0
    with open(path, "r", encoding=FILE_ENCODING, errors=FILE_ERRORS) as f:
        for lineno, line in enumerate(f, 1):
            if is_skippable(line):
                continue
            count += 1
            try:
                errors = rtype.parse(line).validate()
            except ParseError as e:
                errors = [str(e)]
            for err in errors:
                appmsg(f"{path}:{lineno}: {err}")
                problems += 1

    if problems:
        appmsg(f"{path}: {problems} problem(s) in {count} entries")
        return EXIT_INVALID

    if g_verbose:
        appmsg(f"{path}: {count} entries OK")
    return 0


def cmd_apply(db: EtcDatabase, args: argparse.Namespace) -> int:
    records = parse_file(
        args.file,
        record_type(args.database),
        strict=db.config.strict_parsing,
    )
    result = db.write(
        args.database,
        records,
        backup=args.backup,
        dry_run=args.dry_run,
    )

    if result is None:
        if g_verbose:
            appmsg(f"Wrote {len(records)} entries to {args.database}")
        return 0

    print(result.summary())
    for change in result.changes:
        print(f"  {change}")
    for w in result.warnings:
        appmsg(f"warning: {w}")
    for e in result.errors:
        appmsg(f"error: {e}")
    return 0 if result.valid else EXIT_INVALID


def cmd_next_id(db: EtcDatabase, args: argparse.Namespace) -> int:
    try:
        if args.kind == "uid":
            print(db.users.next_uid(args.start))
        else:
            print(db.groups.next_gid(args.start))
    except ValueError as e:
        appmsg(str(e))
        return EXIT_INVALID
    return 0


COMMANDS = {
    "capabilities": cmd_capabilities,
    "list": cmd_list,
    "show": cmd_show,
    "check": cmd_check,
    "apply": cmd_apply,
    "next-id": cmd_next_id,
}


def run_etcutils(args: argparse.Namespace) -> int:
    db = _open_database(args)
    if g_verbose:
        appmsg(f"Using {db!r} with root {db.config.root}")
    return COMMANDS[args.subcommand](db, args)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_etcutils_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if g_verbose else logging.WARNING,
        format="etcutils: %(levelname)s: %(message)s",
    )

    try:
        rc = run_etcutils(args) or 0
        sys.exit(rc)
    except ConfigError as e:
        appmsg(f"Config error: {e}")
        sys.exit(EXIT_ERROR)
    except ValidationError as e:
        appmsg(str(e))
        sys.exit(EXIT_INVALID)
    except PermissionDeniedError as e:
        appmsg(str(e))
        sys.exit(EXIT_PERMISSION)
    except LockError as e:
        appmsg(str(e))
        sys.exit(EXIT_LOCKED)
    except UnsupportedError as e:
        appmsg(str(e))
        sys.exit(EXIT_UNSUPPORTED)
    except NotFoundError as e:
        appmsg(str(e))
        sys.exit(EXIT_NOT_FOUND)
    except EtcUtilsError as e:
        appmsg(str(e))
        sys.exit(EXIT_ERROR)
    except OSError as e:
        appmsg(str(e))
        sys.exit(EXIT_ERROR)


if __name__ == "__main__":
    main()
