#!/usr/bin/env python3
"""Dashboard overview and pending-approval check against the BMU backend."""

from __future__ import annotations

import argparse
import getpass
import os
import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1]
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from services.backend_client import BackendError, BmuApiClient, DEFAULT_BASE_URL
from services.dashboard_service import build_dashboard_view
from services.session_service import resolve_session


def _print_section(title: str) -> None:
    print(f"\n=== {title} ===")


def _print_dashboard(client: BmuApiClient) -> None:
    view = build_dashboard_view(client.get_dashboard_summary())
    _print_section("Summary")
    for card in view["cards"]:
        print(f"{card['title']}: {card['value']}")
    _print_section(view["pie"]["title"])
    if not view["pie"]["segments"]:
        print("  (no categories)")
    for segment in view["pie"]["segments"]:
        print(f"  - {segment['name']}: {segment['value']} ({segment['percent']}%)")


def _print_pending(client: BmuApiClient) -> None:
    pending = client.list_pending_history()
    _print_section(f"Pending Approvals ({len(pending)})")
    for record in pending:
        print(f"  - #{record.id} {record.status} {record.asset_code or '-'} by {record.borrower_name or '-'}")


def main() -> int:
    parser = argparse.ArgumentParser(description="BMU dashboard overview")
    parser.add_argument("--base-url", default=os.environ.get("BMU_API_BASE_URL", DEFAULT_BASE_URL))
    parser.add_argument("--username", default=os.environ.get("BMU_USERNAME", ""))
    parser.add_argument("--token", default=os.environ.get("BMU_TOKEN", ""))
    parser.add_argument("--skip-pending", action="store_true")
    args = parser.parse_args()

    client = BmuApiClient(args.base_url)
    token = (args.token or "").strip()
    try:
        if not token:
            username = (args.username or "").strip()
            if not username:
                print("Provide --token or --username (or export BMU_TOKEN / BMU_USERNAME first).")
                return 2
            token = client.login(username, getpass.getpass("Password: ")).token
    except BackendError as exc:
        print(f"Could not log in: {exc}")
        return 3

    session = resolve_session(token)
    if session is None:
        print("Token is malformed or expired.")
        return 3
    client.token = token
    print(f"Signed in as {session.display_identity} [{session.role or '-'}]")

    try:
        _print_dashboard(client)
        if session.is_elevated and not args.skip_pending:
            _print_pending(client)
    except BackendError as exc:
        print(f"Backend request failed: {exc}")
        return 4
    return 0


if __name__ == "__main__":
    sys.exit(main())
