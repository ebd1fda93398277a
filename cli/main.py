#!/usr/bin/env python3
import os
import sys
import json
import argparse
from typing import Any, Dict, Optional

real_script_path = os.path.realpath(__file__)
project_root = os.path.abspath(os.path.join(os.path.dirname(real_script_path), '..'))
sys.path.insert(0, project_root)

from config.app_config import AppConfig
from core.artifact_store import ArtifactStore
from core.client_parser import ConnectedClientParser
from core.exceptions import ConfigurationError
from core.logging_config import setup_structured_logging, shutdown_logging, get_logger
from core.process_manager import CommandRunner
from core.results import ErrorKind, OperationResult
from core.units import bytes_to_human
from core.user_list_parser import UserListParser
from service.status_gateway import StatusGateway
from service.user_service import UserService

DEFAULT_ENV_FILE = "/etc/ovpn-panel/.env"


def build_services(config: AppConfig) -> Dict[str, Any]:
    runner = CommandRunner(config.commands, logger=get_logger('CommandRunner'))
    artifacts = ArtifactStore(config.paths, logger=get_logger('ArtifactStore'))
    return {
        'users': UserService(runner, artifacts, dialect=config.dialect, logger=get_logger('UserService')),
        'status': StatusGateway(runner, service_config=config.service, paths=config.paths,
                                dialect=config.dialect, logger=get_logger('StatusGateway')),
    }


def report_failure(result: OperationResult) -> None:
    prefix = "⚠️" if result.error_kind is ErrorKind.PARTIAL_SUCCESS else "❌"
    print(f"{prefix} {result.message}")


def print_management_menu() -> None:
    print("\n--- VPN Management Menu ---")
    print("👤 User Management:")
    print("  1. Add User")
    print("  2. Revoke User")
    print("  3. List Users")
    print("  4. Show User Config Path")
    print("\n📊 Monitoring:")
    print("  5. Connected Clients")
    print("  6. Service Status")
    print("  7. Service Logs")
    print("  8. Server Info")
    print("\n📦 System:")
    print("  9. Restart VPN Service")
    print("  10. Exit")


def add_user_flow(user_service: UserService) -> None:
    username = input("Enter username: ").strip()
    days_text = input("Certificate validity in days (press Enter for default): ").strip()
    days: Optional[int] = None
    if days_text:
        if not days_text.isdigit():
            print("❌ Validity must be a whole number of days.")
            return
        days = int(days_text)

    result = user_service.create(username, days)
    if not result.success:
        report_failure(result)
        return
    print(f"✅ {result.message}")
    path = user_service.get_config_path(username)
    if path.success:
        print(f"   Config file: {path.data}")


def revoke_user_flow(user_service: UserService) -> None:
    username = input("Enter username to revoke: ").strip()
    confirm = input(f"Revoke '{username}'? This cannot be undone. (y/n): ").strip().lower()
    if confirm != 'y':
        print("Revoke cancelled.")
        return
    result = user_service.revoke(username)
    if result.success:
        print(f"✅ {result.message}")
    else:
        report_failure(result)


def list_users_flow(user_service: UserService) -> None:
    result = user_service.list_users()
    if not result.success:
        report_failure(result)
        return
    if not result.data:
        print("No users found.")
        return

    print("\n" + "-" * 64)
    print(f"{'Username':<24} {'Status':<10} {'Created':<14} {'Expires'}")
    print("-" * 64)
    for user in result.data:
        print(f"{user.username:<24} {user.status.value:<10} {user.created_at:<14} {user.expires_at}")
    print("-" * 64)


def config_path_flow(user_service: UserService) -> None:
    username = input("Enter username: ").strip()
    result = user_service.get_config_path(username)
    if result.success:
        print(f"📄 {result.data}")
    else:
        report_failure(result)


def connected_clients_flow(gateway: StatusGateway) -> None:
    result = gateway.get_connected_clients()
    snapshot = result.data
    if not result.success or snapshot is None:
        report_failure(result)
        return
    if not snapshot.clients:
        source = snapshot.source or "no source available"
        print(f"No connected clients ({source}).")
        return

    print("\n" + "-" * 96)
    print(f"{'Username':<20} {'Real Address':<18} {'Virtual':<16} {'Received':<12} {'Sent':<12} {'Since'}")
    print("-" * 96)
    for client in snapshot.clients:
        since = client.connected_since
        since_text = since.strftime("%Y-%m-%d %H:%M:%S") if hasattr(since, "strftime") else since
        print(f"{client.username:<20} {client.real_address:<18} {client.virtual_address:<16} "
              f"{bytes_to_human(client.bytes_in):<12} {bytes_to_human(client.bytes_out):<12} {since_text}")
    print("-" * 96)
    print(f"Source: {snapshot.source}")


def service_status_flow(gateway: StatusGateway) -> None:
    result = gateway.get_service_status()
    if not result.success:
        report_failure(result)
        return
    status = result.data
    if status.active:
        print(f"🟢 OpenVPN is running ({status.service_alias})")
    else:
        print("🔴 OpenVPN is not running")


def service_logs_flow(gateway: StatusGateway) -> None:
    lines = input("Number of lines [50]: ").strip() or "50"
    result = gateway.get_logs(lines)
    if not result.success:
        report_failure(result)
        return
    print(result.data or result.message)


def server_info_flow(gateway: StatusGateway) -> None:
    result = gateway.get_server_info()
    if not result.success:
        report_failure(result)
        return
    info = result.data
    print(f"Public IP : {info.public_ip}")
    print(f"Local IP  : {info.local_ip}")
    print(f"Hostname  : {info.hostname}")
    print(f"Uptime    : {info.uptime}")
    print(f"OS        : {info.os}")


def restart_flow(gateway: StatusGateway) -> None:
    confirm = input("Restart the VPN service? Connected clients will drop. (y/n): ").strip().lower()
    if confirm != 'y':
        return
    result = gateway.restart()
    if result.success:
        print(f"✅ {result.message}")
    else:
        report_failure(result)


def _dump(result: OperationResult) -> Dict[str, Any]:
    body = result.to_dict()
    data = result.data
    if isinstance(data, list):
        body['data'] = [item.to_dict() for item in data]
    elif hasattr(data, 'to_dict'):
        body['data'] = data.to_dict()
    elif data is not None:
        body['data'] = data
    return body


def run_check(services: Dict[str, Any]) -> int:
    """Run every read-only query once and print the parsed results."""
    users = services['users']
    gateway = services['status']
    report = {
        'users': _dump(users.list_users()),
        'clients': _dump(gateway.get_connected_clients()),
        'service': _dump(gateway.get_service_status()),
        'server': _dump(gateway.get_server_info()),
    }
    print(json.dumps(report, indent=2, default=str))
    return 0 if all(section['success'] for section in report.values()) else 1


def run_parse(kind: str, path: str, config: AppConfig) -> int:
    """Parse a captured command output file without touching the system."""
    with open(path, "r", encoding="utf-8", errors="replace") as handle:
        text = handle.read()
    if kind == 'users':
        parser = UserListParser(config.dialect.tool)
        records = parser.parse_json(text)
        if records is None:
            records = parser.parse(text)
    else:
        records = ConnectedClientParser(config.dialect.tool).parse(text)
    print(json.dumps([record.to_dict() for record in records], indent=2, default=str))
    return 0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="OpenVPN panel administration")
    parser.add_argument("--env-file", default=os.environ.get("PANEL_ENV_FILE", DEFAULT_ENV_FILE))
    parser.add_argument("--check", action="store_true",
                        help="print parsed tool output once and exit")
    parser.add_argument("--parse", nargs=2, metavar=("KIND", "FILE"),
                        help="parse a saved 'users' or 'clients' output file")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    config = AppConfig.from_env(args.env_file)
    setup_structured_logging(os.environ.get("LOG_LEVEL", "WARNING"))

    try:
        if args.parse:
            kind, path = args.parse
            if kind not in ('users', 'clients'):
                print("❌ KIND must be 'users' or 'clients'.")
                sys.exit(2)
            sys.exit(run_parse(kind, path, config))

        services = build_services(config)
        if args.check:
            sys.exit(run_check(services))

        user_service = services['users']
        gateway = services['status']
        flows = {
            '1': lambda: add_user_flow(user_service),
            '2': lambda: revoke_user_flow(user_service),
            '3': lambda: list_users_flow(user_service),
            '4': lambda: config_path_flow(user_service),
            '5': lambda: connected_clients_flow(gateway),
            '6': lambda: service_status_flow(gateway),
            '7': lambda: service_logs_flow(gateway),
            '8': lambda: server_info_flow(gateway),
            '9': lambda: restart_flow(gateway),
        }

        while True:
            print_management_menu()
            choice = input("Enter your choice: ").strip()
            if choice == '10':
                print("Goodbye!")
                break
            flow = flows.get(choice)
            if flow is None:
                print("Invalid choice. Please try again.")
                continue
            flow()
    except ConfigurationError as e:
        print(f"❌ {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
    finally:
        shutdown_logging()


if __name__ == "__main__":
    main()
