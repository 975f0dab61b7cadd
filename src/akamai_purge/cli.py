"""
Command-line interface for the Akamai purge client.

This module provides the main CLI entry point with commands for:
- purge: Queue paths or URLs for purging
- queue: Show the purge queue length
- verify: Check that the configured credentials are authorized
- status: Inspect, refresh and expire stored purge statuses
- config: Configuration management
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .client import PurgeClient
from .config import (
    DEFAULT_CONFIG_FILE,
    AkamaiSettings,
    apply_env_overrides,
    load_credentials_from_edgerc,
    load_settings_from_file,
    save_settings_to_file,
    settings_from_dict,
    settings_to_dict,
)
from .diagnostics import CredentialsValidator, QueueLengthCheck, validate_settings
from .enums import PurgeAction, PurgeDomain, PurgeType, Severity
from .exceptions import AkamaiPurgeError, ConfigurationError
from .kv_store import JsonFileKeyValueStore
from .status_log import STATUS_LOG_HEADERS, fetch_status, format_status_rows
from .status_store import PurgeStatusStore


def load_settings(args: argparse.Namespace) -> Optional[AkamaiSettings]:
    """
    Load settings for a command.

    The config file is read first, then ``.edgerc`` credentials (if given),
    then ``AKAMAI_*`` environment variables.

    Returns:
        AkamaiSettings, or None if loading failed (the error is printed)
    """
    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_FILE
    try:
        settings = load_settings_from_file(config_path) or AkamaiSettings()
        if getattr(args, "edgerc", None):
            settings.credentials = load_credentials_from_edgerc(
                Path(args.edgerc), args.section,
            )
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return None
    return apply_env_overrides(settings)


def create_logger(settings: AkamaiSettings, verbose: bool) -> Optional[AuditLogger]:
    if not verbose and not settings.logging.log_requests:
        return None
    return AuditLogger.from_config(settings.logging)


def create_state_store(settings: AkamaiSettings) -> JsonFileKeyValueStore:
    return JsonFileKeyValueStore(
        file_path=settings.persistence.state_file_path,
        hmac_secret=settings.persistence.hmac_secret,
    )


def create_client(
    settings: AkamaiSettings,
    status_store: PurgeStatusStore,
    logger: Optional[AuditLogger] = None,
) -> Optional[PurgeClient]:
    """
    Build a client, printing configuration problems instead of raising.

    Returns:
        PurgeClient, or None if the settings are unusable
    """
    try:
        return PurgeClient.from_settings(
            settings,
            status_store=status_store,
            logger=logger,
        )
    except AkamaiPurgeError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return None


def read_paths(args: argparse.Namespace) -> list[str]:
    """Collect paths from the command line and an optional file (one per line, '#' comments)."""
    paths = list(args.paths or [])
    if args.file:
        content = Path(args.file).read_text(encoding="utf-8")
        for line in content.splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                paths.append(line)
    return paths


def print_status_table(statuses) -> None:
    rows = format_status_rows(statuses, url_separator=", ")
    if not rows:
        print("No purge requests recorded.")
        return
    print(" | ".join(STATUS_LOG_HEADERS))
    for row in rows:
        print(" | ".join(row))


def print_status_detail(status) -> None:
    print(f"Purge ID: {status.purge_id}")
    print(f"  Support ID: {status.support_id}")
    print(f"  Status: {status.description}")
    print(f"  HTTP code: {status.http_code}")
    print(f"  Complete: {'yes' if status.is_complete else 'no'}")
    print(f"  Requests recorded: {len(status.snapshots)}")
    if status.urls:
        print("  URLs:")
        for url in status.urls:
            print(f"    - {url}")


def cmd_purge(args: argparse.Namespace) -> int:
    """Handle the 'purge' command."""
    settings = load_settings(args)
    if settings is None:
        return 1

    try:
        paths = read_paths(args)
    except OSError as e:
        print(f"Error: Could not read {args.file}: {e}", file=sys.stderr)
        return 1
    if not paths:
        print("Error: No paths given", file=sys.stderr)
        return 1

    client = create_client(
        settings,
        PurgeStatusStore(create_state_store(settings)),
        create_logger(settings, args.verbose),
    )
    if client is None:
        return 1

    with client:
        try:
            if args.action:
                client.set_action(args.action)
            if args.domain:
                client.set_domain(args.domain)
            if args.type:
                client.set_type(args.type)
            if args.queue:
                client.set_queue(args.queue)
        except AkamaiPurgeError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

        strict = False if args.lenient else None
        result = client.purge_urls(paths, strict=strict)

    for rejected in result.rejected:
        print(f"Rejected: {rejected.path} ({rejected.message})", file=sys.stderr)

    if not result.success:
        print(f"Purge failed: {result.error.message}", file=sys.stderr)
        return 1

    print(f"Queued {len(result.urls_queued)} URL(s) for purging")
    print(f"  Purge ID: {result.response.purge_id}")
    print(f"  Support ID: {result.response.support_id}")
    if result.response.estimated_seconds is not None:
        print(f"  Estimated time: {result.response.estimated_seconds}s")
    if result.record_error:
        print(f"Warning: purge status was not recorded: {result.record_error}", file=sys.stderr)
    if args.verbose:
        for url in result.urls_queued:
            print(f"    - {url}")
    return 0


def cmd_queue(args: argparse.Namespace) -> int:
    """Handle the 'queue' command."""
    settings = load_settings(args)
    if settings is None:
        return 1

    client = create_client(
        settings,
        PurgeStatusStore(create_state_store(settings)),
        create_logger(settings, args.verbose),
    )
    if client is None:
        return 1

    with client:
        if args.queue:
            try:
                client.set_queue(args.queue)
            except AkamaiPurgeError as e:
                print(f"Error: {e.message}", file=sys.stderr)
                return 1
        result = QueueLengthCheck(client).run()

    print(result.recommendation)
    return 1 if result.severity == Severity.ERROR else 0


def cmd_verify(args: argparse.Namespace) -> int:
    """Handle the 'verify' command."""
    settings = load_settings(args)
    if settings is None:
        return 1

    kv_store = create_state_store(settings)
    validator = CredentialsValidator(kv_store)
    client = create_client(settings, PurgeStatusStore(kv_store), create_logger(settings, args.verbose))
    if client is None:
        validator.invalidate()
        return 1

    with client:
        authorized = validator.check(client)

    if authorized:
        print("Credentials are authorized.")
        return 0
    print("Credentials are NOT authorized.", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    """Handle the 'status' command."""
    settings = load_settings(args)
    if settings is None:
        return 1

    store = PurgeStatusStore(create_state_store(settings))

    try:
        if args.action == "list":
            print_status_table(store.statuses())
            return 0

        if args.action == "show":
            if not args.purge_id:
                print("Error: 'status show' needs a purge id", file=sys.stderr)
                return 1
            status = store.status(args.purge_id)
            if status is None:
                print(f"Unknown purge id: {args.purge_id}", file=sys.stderr)
                return 1
            print_status_detail(status)
            return 0

        if args.action == "check":
            return _check_statuses(args, settings, store)

        if args.action == "delete":
            if not args.purge_id:
                print("Error: 'status delete' needs a purge id", file=sys.stderr)
                return 1
            store.delete(args.purge_id)
            print(f"Deleted purge status: {args.purge_id}")
            return 0

        if args.action == "expire":
            max_age = args.max_age if args.max_age is not None else settings.persistence.status_expire
            expired = store.expire(max_age)
            print(f"Expired {len(expired)} purge status(es)")
            for purge_id in expired:
                print(f"  - {purge_id}")
            return 0
    except AkamaiPurgeError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    return 1


def _check_statuses(
    args: argparse.Namespace,
    settings: AkamaiSettings,
    store: PurgeStatusStore,
) -> int:
    if args.purge_id:
        purge_ids = [args.purge_id]
    else:
        purge_ids = [status.purge_id for status in store.statuses() if not status.is_complete]
    if not purge_ids:
        print("No pending purge requests.")
        return 0

    client = create_client(settings, store, create_logger(settings, args.verbose))
    if client is None:
        return 1

    failed = False
    with client:
        for purge_id in purge_ids:
            status, error = fetch_status(client, store, purge_id)
            if error is not None:
                failed = True
                print(f"Could not refresh {purge_id}: {error.message}", file=sys.stderr)
                if status is not None:
                    print(f"{status.purge_id}: {status.description} (stored, not refreshed)")
                continue
            print(f"{status.purge_id}: {status.description}")
    return 1 if failed else 0


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_FILE

    if args.action == "show":
        try:
            settings = load_settings_from_file(config_path)
        except ConfigurationError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1
        if settings is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  REST API URL: {settings.endpoint.rest_api_url or '-'}")
        print(f"  Host: {settings.credentials.host or '-'}")
        print(f"  Credentials: {'complete' if settings.credentials.complete else 'incomplete'}")
        print(f"  Devel mode: {settings.endpoint.devel_mode}")
        print(f"  Basepath: {settings.defaults.basepath or '-'}")
        print(
            f"  Defaults: action={settings.defaults.action} domain={settings.defaults.domain} "
            f"type={settings.defaults.type} queue={settings.defaults.queue}"
        )
        print(f"  State file: {settings.persistence.state_file_path}")
        print(f"  Status expire: {settings.persistence.status_expire}s")
        print(f"  Log level: {settings.logging.level}")
        print(f"  Log requests: {settings.logging.log_requests}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        settings = AkamaiSettings()
        if args.edgerc:
            try:
                settings.credentials = load_credentials_from_edgerc(Path(args.edgerc), args.section)
            except ConfigurationError as e:
                print(f"Error: {e.message}", file=sys.stderr)
                return 1
        try:
            save_settings_to_file(settings, config_path)
        except ConfigurationError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1
        print(f"Configuration created at: {config_path}")
        return 0

    elif args.action == "validate":
        try:
            settings = load_settings_from_file(config_path)
        except ConfigurationError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1
        if settings is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

        result = validate_settings(settings)
        for warning in result.warnings:
            print(f"Warning: {warning}")
        for error in result.errors:
            print(f"Error: {error}", file=sys.stderr)
        if not result.valid:
            return 1
        print(f"Configuration at {config_path} is valid.")
        return 0

    elif args.action == "set":
        return _set_config_value(args, config_path)

    return 1


def _set_config_value(args: argparse.Namespace, config_path: Path) -> int:
    if not args.key or args.value is None:
        print("Error: 'config set' needs a key and a value", file=sys.stderr)
        return 1

    try:
        old = load_settings_from_file(config_path) or AkamaiSettings()
        new = settings_from_dict(settings_to_dict(old))
        new.set(args.key, args.value)
        save_settings_to_file(new, config_path)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    print(f"Set {args.key} in {config_path}")

    validator = CredentialsValidator(create_state_store(new))
    client = None
    if new.credentials.complete:
        try:
            client = PurgeClient.from_settings(new, status_store=PurgeStatusStore())
        except AkamaiPurgeError:
            client = None
    if client is None:
        validator.invalidate()
        return 0

    with client:
        authorized = validator.on_settings_saved(old, new, client)
    if authorized is not None:
        print(f"Credentials {'are' if authorized else 'are NOT'} authorized.")
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--edgerc",
        help="Read credentials from an .edgerc file",
    )
    parser.add_argument(
        "--section",
        default="default",
        help="Section of the .edgerc file (default: default)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="akamai-purge",
        description="Queue and track Akamai CCU purge requests",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'purge' command
    purge_parser = subparsers.add_parser(
        "purge",
        help="Queue paths or URLs for purging",
    )
    purge_parser.add_argument(
        "paths",
        nargs="*",
        help="Relative paths or absolute URLs",
    )
    purge_parser.add_argument(
        "--file", "-f",
        help="Read additional paths from a file (one per line)",
    )
    purge_parser.add_argument(
        "--action",
        choices=[a.value for a in PurgeAction],
        help="Purge action (default from configuration)",
    )
    purge_parser.add_argument(
        "--domain",
        choices=[d.value for d in PurgeDomain],
        help="Target network (default from configuration)",
    )
    purge_parser.add_argument(
        "--type",
        choices=[t.value for t in PurgeType],
        help="Object type (default from configuration)",
    )
    purge_parser.add_argument(
        "--queue",
        help="Purge queue (default from configuration)",
    )
    purge_parser.add_argument(
        "--lenient",
        action="store_true",
        help="Submit the valid paths even if some are rejected",
    )
    _add_common_arguments(purge_parser)
    purge_parser.set_defaults(func=cmd_purge)

    # 'queue' command
    queue_parser = subparsers.add_parser(
        "queue",
        help="Show the number of items in the purge queue",
    )
    queue_parser.add_argument(
        "--queue",
        help="Purge queue (default from configuration)",
    )
    _add_common_arguments(queue_parser)
    queue_parser.set_defaults(func=cmd_queue)

    # 'verify' command
    verify_parser = subparsers.add_parser(
        "verify",
        help="Check that the configured credentials are authorized",
    )
    _add_common_arguments(verify_parser)
    verify_parser.set_defaults(func=cmd_verify)

    # 'status' command
    status_parser = subparsers.add_parser(
        "status",
        help="Inspect and maintain stored purge statuses",
    )
    status_parser.add_argument(
        "action",
        choices=["list", "show", "check", "delete", "expire"],
        help="Status action",
    )
    status_parser.add_argument(
        "purge_id",
        nargs="?",
        help="Purge id (show, delete; optional for check)",
    )
    status_parser.add_argument(
        "--max-age",
        type=float,
        help="Expire statuses older than this many seconds (default from configuration)",
    )
    _add_common_arguments(status_parser)
    status_parser.set_defaults(func=cmd_status)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate", "set"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "key",
        nargs="?",
        help="Setting to change (set)",
    )
    config_parser.add_argument(
        "value",
        nargs="?",
        help="New value (set)",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.add_argument(
        "--edgerc",
        help="Take credentials for a new configuration from an .edgerc file",
    )
    config_parser.add_argument(
        "--section",
        default="default",
        help="Section of the .edgerc file (default: default)",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
