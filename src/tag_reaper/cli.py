"""CLI for the registry tag reaper."""

import argparse
import code
import os
import sys
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError
from safir.pydantic import to_camel_case

from .config import ReaperConfig
from .exceptions import RegistryAuthError, RegistryError
from .services.reaper import Reaper


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description=(
            "Mark excess tags in a container registry for deletion.  You will"
            " have to run the registry's garbage collection yourself."
        )
    )
    parser.add_argument(
        "-c",
        "--config-file",
        type=Path,
        help="reaper config file; command-line options override it",
        default=None,
    )
    parser.add_argument(
        "-r",
        "--registry-url",
        help="base URL of the container registry, e.g. https://docker.io/",
    )
    parser.add_argument(
        "--registry-user",
        help="username for the registry (default: $REGISTRY_USER)",
    )
    parser.add_argument(
        "--registry-password",
        help="password for the registry (default: $REGISTRY_PASSWORD)",
    )
    parser.add_argument(
        "-m",
        "--max-per-tag",
        type=int,
        help="maximum number of tags to keep per tag pattern",
    )
    parser.add_argument(
        "-t",
        "--tags",
        action="append",
        help=(
            "tag regex; may be repeated, and each is a separate retention"
            " group.  If none are given, no action is taken"
        ),
    )
    parser.add_argument(
        "-i",
        "--images",
        action="append",
        help=(
            "image regex; may be repeated, and an image matching any is"
            " considered.  If none are given, all images are considered"
        ),
    )
    parser.add_argument(
        "-s",
        "--semver",
        action="store_true",
        help="order tags by semantic version rather than by name",
        default=False,
    )
    parser.add_argument(
        "-d",
        "--delete",
        action="store_true",
        help="run actual deletions; otherwise this is a dry run",
        default=False,
    )
    parser.add_argument(
        "-w",
        "--workers",
        type=int,
        help="number of repositories to process concurrently",
    )
    parser.add_argument(
        "-f",
        "--input-file",
        type=Path,
        help="use repository contents from this JSON dump, not the registry",
    )
    parser.add_argument(
        "--dump",
        type=Path,
        help="write repository contents as JSON to this file, then exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
        default=False,
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Load config and then drop into Python REPL",
        default=False,
    )
    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace) -> ReaperConfig:
    data: dict[str, Any] = {}
    if args.config_file:
        data = yaml.safe_load(args.config_file.read_text()) or {}

    def override(key: str, value: Any) -> None:
        # The file may use either spelling of a key.
        data.pop(key, None)
        data[to_camel_case(key)] = value

    for key in ("registry_url", "max_per_tag", "workers", "input_file"):
        value = getattr(args, key)
        if value is not None:
            override(key, value)
    for key in ("tags", "images"):
        if getattr(args, key):
            override(key, getattr(args, key))
    for key in ("semver", "delete", "debug"):
        if getattr(args, key):
            override(key, True)

    username = args.registry_user or os.getenv("REGISTRY_USER")
    password = args.registry_password or os.getenv("REGISTRY_PASSWORD")
    if username or password:
        auth = dict(data.get("auth") or {})
        if username:
            auth["username"] = username
        if password:
            auth["password"] = password
        data["auth"] = auth
    return ReaperConfig.model_validate(data)


def run(argv: list[str] | None = None) -> int:
    """Run the reaper and return the process exit status."""
    args = _parse_args(argv)
    logger = structlog.get_logger(__name__)
    try:
        cfg = _load_config(args)
        reaper = Reaper(cfg)
    except (OSError, ValueError, ValidationError, yaml.YAMLError) as exc:
        logger.error("Invalid configuration", error=str(exc))
        return 1

    try:
        if args.interactive:
            print("Reaper application is in variable 'reaper'")
            print("-----------------------------------------")
            code.interact(local=locals())
            return 0
        if args.dump:
            reaper.dump(args.dump)
            return 0
        report = reaper.reap()
    except RegistryAuthError as exc:
        logger.error("Registry refused our credentials", error=str(exc))
        return 1
    except RegistryError as exc:
        logger.error("Registry request failed", error=str(exc))
        return 1
    finally:
        reaper.close()

    print(report.render())
    # Repositories that could not be listed are reported, not fatal.
    if report.deletion_failed and not report.dry_run:
        return 1
    return 0


def main() -> None:
    """Don't fear the Reaper."""
    sys.exit(run())
