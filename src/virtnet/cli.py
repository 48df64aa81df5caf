#!/usr/bin/env python3
"""
virtnet CLI - apply declarative libvirt network files.

The state file keeps the network UUID between invocations, the way an
infrastructure-as-code engine keeps a resource id.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

import questionary
from pydantic import ValidationError
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from virtnet import __version__, network_xml
from virtnet.backends.libvirt_network import LibvirtNetworkService
from virtnet.builder import build
from virtnet.config import ReconcilerSettings
from virtnet.errors import VirtNetError
from virtnet.logging import configure_logging
from virtnet.models import NetworkSpec, NetworkState, requires_replacement
from virtnet.reconciler import NetworkReconciler

console = Console()
VIRTNET_STATE_FILE = ".virtnet-state.yaml"
VIRTNET_NETWORK_FILE = "network.yaml"


def load_state(path: Path) -> Optional[NetworkState]:
    if not path.exists():
        return None
    return NetworkState.load(path)


def settings_from(args) -> ReconcilerSettings:
    return ReconcilerSettings.from_env(uri=args.uri, user_session=args.user)


def make_reconciler(args, service: LibvirtNetworkService) -> NetworkReconciler:
    return NetworkReconciler(service, settings=settings_from(args))


def open_service(args) -> LibvirtNetworkService:
    return LibvirtNetworkService(settings_from(args).uri)


def print_state(state: NetworkState) -> None:
    table = Table(title=f"Network {state.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("id", state.id or "-")
    table.add_row("mode", state.mode)
    table.add_row("bridge", state.bridge or "-")
    table.add_row("domain", state.domain or "-")
    table.add_row("addresses", ", ".join(state.addresses) or "-")
    table.add_row("dhcp", "enabled" if state.dhcp_enabled else "disabled")
    table.add_row("dns local only", str(state.dns_local_only))
    for index, forwarder in enumerate(state.dns_forwarders):
        table.add_row(
            f"dns forwarder {index}",
            f"{forwarder.address or ''} {forwarder.domain or ''}".strip() or "-",
        )
    table.add_row("autostart", str(state.autostart))
    console.print(table)


def cmd_plan(args) -> int:
    """Print the network XML that apply would submit."""
    spec = NetworkSpec.load(Path(args.file))
    xml = network_xml.encode(build(spec))
    console.print(Syntax(xml, "xml", theme="ansi_dark"))
    return 0


def cmd_apply(args) -> int:
    """Create the network, or converge an existing one to the file."""
    spec = NetworkSpec.load(Path(args.file))
    state_path = Path(args.state)
    state = load_state(state_path)

    with open_service(args) as service:
        reconciler = make_reconciler(args, service)

        if state is not None and reconciler.exists(state):
            changed = requires_replacement(state.spec(), spec)
            if not changed:
                state = reconciler.update(state, spec)
                state.save(state_path)
                console.print(f"[green]✅ Network '{state.name}' is up to date[/]")
                print_state(state)
                return 0

            console.print(
                f"[yellow]⚠️  Changed fields require replacement: {', '.join(changed)}[/]"
            )
            if not args.yes and not questionary.confirm(
                f"Destroy and recreate network '{state.name}'?", default=False
            ).ask():
                console.print("[dim]Aborted[/]")
                return 1
            reconciler.delete(state)

        with console.status(f"Creating network '{spec.name}'..."):
            state = reconciler.create(spec)
        state.save(state_path)

    console.print(f"[green]✅ Network '{state.name}' created: {state.id}[/]")
    print_state(state)
    return 0


def cmd_show(args) -> int:
    state_path = Path(args.state)
    state = load_state(state_path)
    if state is None:
        console.print(f"[red]❌ No state file at {state_path}[/]")
        return 1

    with open_service(args) as service:
        state = make_reconciler(args, service).read(state)
    state.save(state_path)
    print_state(state)
    return 0


def cmd_autostart(args) -> int:
    state_path = Path(args.state)
    state = load_state(state_path)
    if state is None:
        console.print(f"[red]❌ No state file at {state_path}[/]")
        return 1

    desired = state.spec().model_copy(update={"autostart": args.value == "on"})
    with open_service(args) as service:
        state = make_reconciler(args, service).update(state, desired)
    state.save(state_path)
    console.print(f"[green]✅ Autostart {args.value} for '{state.name}'[/]")
    return 0


def cmd_destroy(args) -> int:
    state_path = Path(args.state)
    state = load_state(state_path)
    if state is None:
        console.print(f"[red]❌ No state file at {state_path}[/]")
        return 1

    if not args.yes and not questionary.confirm(
        f"Destroy network '{state.name}' ({state.id})?", default=False
    ).ask():
        console.print("[dim]Aborted[/]")
        return 1

    with open_service(args) as service:
        with console.status(f"Destroying network '{state.name}'..."):
            make_reconciler(args, service).delete(state)
    state_path.unlink()
    console.print(f"[green]✅ Network '{state.name}' destroyed[/]")
    return 0


def cmd_exists(args) -> int:
    state = load_state(Path(args.state))
    if state is None:
        console.print("[dim]absent (no state)[/]")
        return 1

    with open_service(args) as service:
        present = make_reconciler(args, service).exists(state)
    console.print("present" if present else "absent")
    return 0 if present else 1


def cmd_import(args) -> int:
    state_path = Path(args.state)
    if state_path.exists() and not args.force:
        console.print(f"[red]❌ State file already exists: {state_path} (use --force)[/]")
        return 1

    with open_service(args) as service:
        state = make_reconciler(args, service).import_network(args.uuid)
    state.save(state_path)
    console.print(f"[green]✅ Imported network '{state.name}'[/]")
    print_state(state)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="virtnet", description="Reconcile declarative libvirt virtual networks"
    )
    parser.add_argument("--version", action="version", version=f"virtnet {__version__}")
    parser.add_argument("--uri", help="libvirt connection URI (default: qemu:///system)")
    parser.add_argument(
        "--user", "-u", action="store_true", help="Use user session (qemu:///session)"
    )
    parser.add_argument(
        "--state", "-s", default=VIRTNET_STATE_FILE, help="State file holding the network id"
    )
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    parser.add_argument("--log-file", type=Path, help="Also write JSON logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    plan_parser = subparsers.add_parser("plan", help="Print the generated network XML")
    plan_parser.add_argument("file", nargs="?", default=VIRTNET_NETWORK_FILE)
    plan_parser.set_defaults(func=cmd_plan)

    apply_parser = subparsers.add_parser("apply", help="Create or update a network")
    apply_parser.add_argument("file", nargs="?", default=VIRTNET_NETWORK_FILE)
    apply_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask before replacing")
    apply_parser.set_defaults(func=cmd_apply)

    show_parser = subparsers.add_parser("show", help="Read the live network")
    show_parser.set_defaults(func=cmd_show)

    autostart_parser = subparsers.add_parser("autostart", help="Toggle autostart")
    autostart_parser.add_argument("value", choices=["on", "off"])
    autostart_parser.set_defaults(func=cmd_autostart)

    destroy_parser = subparsers.add_parser("destroy", help="Destroy the network")
    destroy_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask")
    destroy_parser.set_defaults(func=cmd_destroy)

    exists_parser = subparsers.add_parser("exists", help="Exit 0 if the network exists")
    exists_parser.set_defaults(func=cmd_exists)

    import_parser = subparsers.add_parser("import", help="Adopt an existing network by UUID")
    import_parser.add_argument("uuid")
    import_parser.add_argument("--force", "-f", action="store_true", help="Overwrite state file")
    import_parser.set_defaults(func=cmd_import)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, json_output=args.json_logs, log_file=args.log_file)

    try:
        return args.func(args)
    except (VirtNetError, ValidationError, FileNotFoundError, ConnectionError) as e:
        console.print(f"[red]❌ {e}[/]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
