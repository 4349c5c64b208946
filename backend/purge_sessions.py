#!/usr/bin/env python3
"""
Delete expired session rows.

Expired sessions are already rejected at lookup time; this command only
reclaims the storage. Run it from cron or a scheduler.

Usage:
    python purge_sessions.py                 # Delete expired sessions
    python purge_sessions.py --dry-run       # Count expired sessions, delete nothing
    python purge_sessions.py --list-active   # Show active sessions per user
"""

import argparse
import asyncio
import sys
from collections import Counter

from rich.console import Console
from rich.table import Table

from modules.auth.repository import CredentialRepository
from modules.auth.service import AuthService
from modules.auth.sessions import utc_now
from shared.database import ConnectionPool, StoreUnavailableError

console = Console()


def show_active_sessions(store: CredentialRepository) -> None:
    """Print how many live sessions each user holds."""
    per_user = Counter(session.user_id for session in store.list_active_sessions(utc_now()))

    if not per_user:
        console.print("[dim]No active sessions.[/dim]")
        return

    table = Table(title="Active Sessions")
    table.add_column("User", style="cyan")
    table.add_column("Sessions", justify="right")
    for user_id, count in per_user.most_common():
        table.add_row(user_id, str(count))
    console.print(table)


def main():
    parser = argparse.ArgumentParser(description="Delete expired PathPal sessions")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Count expired sessions without deleting anything",
    )
    parser.add_argument(
        "--list-active",
        action="store_true",
        help="Show active sessions per user",
    )
    args = parser.parse_args()

    pool = ConnectionPool()
    try:
        pool.open()
    except (RuntimeError, StoreUnavailableError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    try:
        store = CredentialRepository(pool)
        if args.list_active:
            show_active_sessions(store)
        if args.dry_run:
            expired = store.count_expired_sessions(utc_now())
            console.print(f"[yellow]Dry run:[/yellow] Would purge {expired} expired session(s)")
            return
        if args.list_active:
            return

        purged = asyncio.run(AuthService(store).purge_expired_sessions())
        console.print(f"[green]✓[/green] Purged {purged} expired session(s)")
    finally:
        pool.close()


if __name__ == "__main__":
    main()
