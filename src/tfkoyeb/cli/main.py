"""
Command line for the Koyeb provider core.

Usage:
    tfkoyeb resolve <kind> <reference>
    tfkoyeb wait <kind> <reference> --status HEALTHY [--timeout 300] [--gone]

Credentials come from KOYEB_TOKEN (see tfkoyeb.config.settings).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Awaitable, Callable, Sequence

from rich.console import Console

from tfkoyeb.config.settings import Settings, get_settings
from tfkoyeb.core.errors import main_with_error_handling
from tfkoyeb.idmapper import ResourceKind
from tfkoyeb.logging import configure_logging
from tfkoyeb.providers.koyeb import KoyebProvider
from tfkoyeb.waiter import deployment_status, domain_status, service_status, wait_for_status

console = Console()

ProviderFactory = Callable[[Settings], KoyebProvider]

# kind -> (mapper kind used to resolve names, getter name on the client, extractor)
WAITABLE_KINDS: dict[str, tuple[ResourceKind | None, str, Callable[[Any], str | None]]] = {
    "service": (ResourceKind.SERVICE, "get_service", service_status),
    "domain": (ResourceKind.DOMAIN, "get_domain", domain_status),
    "deployment": (None, "get_deployment", deployment_status),
}


def _default_provider(settings: Settings) -> KoyebProvider:
    return KoyebProvider.from_settings(settings)


def _run(coro: Awaitable[Any]) -> Any:
    return asyncio.run(coro)  # type: ignore[arg-type]


@main_with_error_handling()
def resolve_command(
    kind: str,
    reference: str,
    *,
    settings: Settings | None = None,
    provider_factory: ProviderFactory = _default_provider,
) -> int:
    """Print the ID a reference resolves to."""
    provider = provider_factory(settings or get_settings())
    resource_id = _run(provider.mapper.resolve(ResourceKind(kind), reference))
    console.print(resource_id, highlight=False)
    return 0


@main_with_error_handling()
def wait_command(
    kind: str,
    reference: str,
    statuses: Sequence[str],
    *,
    timeout: float | None = None,
    gone: bool = False,
    settings: Settings | None = None,
    provider_factory: ProviderFactory = _default_provider,
) -> int:
    """Block until a service, domain or deployment reaches a status (or is deleted)."""
    settings = settings or get_settings()
    provider = provider_factory(settings)
    mapper_kind, getter_name, extractor = WAITABLE_KINDS[kind]

    async def _wait() -> None:
        resource_id = reference
        if mapper_kind is not None:
            resource_id = await provider.mapper.resolve(mapper_kind, reference)
        getter = getattr(provider.client, getter_name)
        await wait_for_status(
            lambda: getter(resource_id),
            f"{kind.capitalize()} {reference}",
            statuses,
            timeout=timeout if timeout is not None else settings.wait_timeout,
            not_found_is_error=not gone,
            status_of=extractor,
            poll_interval=settings.wait_poll_interval,
        )

    _run(_wait())
    console.print(f"{kind} {reference}: {'deleted' if gone else 'ready'}", highlight=False)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tfkoyeb", description="Koyeb provider helpers")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a name or slug to an ID")
    resolve_parser.add_argument("kind", choices=[kind.value for kind in ResourceKind])
    resolve_parser.add_argument("reference", help="Name, ID, or app/service slug")

    wait_parser = subparsers.add_parser("wait", help="Wait for a resource status")
    wait_parser.add_argument("kind", choices=sorted(WAITABLE_KINDS))
    wait_parser.add_argument("reference", help="Name, ID, or app/service slug")
    wait_parser.add_argument(
        "--status",
        dest="statuses",
        action="append",
        default=[],
        help="Target status (repeatable)",
    )
    wait_parser.add_argument("--timeout", type=float, help="Timeout in seconds")
    wait_parser.add_argument("--gone", action="store_true", help="Wait for the resource to be deleted")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    debug = args.debug or settings.debug
    configure_logging(logging.DEBUG if debug else logging.WARNING, json_output=not args.debug)

    if args.command == "resolve":
        sys.exit(resolve_command(args.kind, args.reference, settings=settings))

    if args.command == "wait":
        if not args.statuses and not args.gone:
            parser.error("wait requires --status or --gone")
        sys.exit(
            wait_command(
                args.kind,
                args.reference,
                args.statuses,
                timeout=args.timeout,
                gone=args.gone,
                settings=settings,
            )
        )

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
