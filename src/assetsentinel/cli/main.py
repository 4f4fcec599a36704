"""AssetSentinel CLI — run the server and do one-off maintenance chores.

Usage:
    assetsentinel serve                          # Run the API + hub + scheduler
    assetsentinel init-db                        # Create all tables
    assetsentinel create-admin "Acme" admin@acme.io s3cret --name "Ada Admin"
    assetsentinel scan                           # One due/overdue scan, no broadcasts
    assetsentinel status                         # Ask a running server for its health
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys

import click
import httpx

DEFAULT_API_URL = "http://localhost:8080"


def _api_url() -> str:
    return os.environ.get("ASSETSENTINEL_API_URL", DEFAULT_API_URL).rstrip("/")


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Inside an already running loop (CliRunner in async tests) the coroutine
    is offloaded to a worker thread with its own loop.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="assetsentinel")
def main():
    """AssetSentinel — asset maintenance backend with live notifications."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: settings.host)")
@click.option("--port", default=None, type=int, help="Port (default: settings.port)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the HTTP/WebSocket server."""
    import uvicorn

    from assetsentinel.config import settings

    uvicorn.run(
        "assetsentinel.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create all tables from the ORM models."""
    _run(_init_db_impl())
    click.secho("Database schema created", fg="green")


async def _init_db_impl():
    from assetsentinel.db.engine import create_all, engine

    try:
        await create_all()
    finally:
        await engine.dispose()


@main.command("create-admin")
@click.argument("organization")
@click.argument("email")
@click.argument("password")
@click.option("--name", "full_name", default="Administrator", help="Admin's full name")
def create_admin(organization: str, email: str, password: str, full_name: str):
    """Create an ORGANIZATION together with its first admin user."""
    if len(password) < 6:
        click.secho("Error: password must be at least 6 characters", fg="red", err=True)
        sys.exit(1)
    org_id, user_id = _run(_create_admin_impl(organization, email, password, full_name))
    if org_id is None:
        click.secho(f"Error: {email} is already registered", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Organization #{org_id} created, admin user #{user_id} ({email})", fg="green")


async def _create_admin_impl(organization: str, email: str, password: str, full_name: str):
    from assetsentinel.auth.password import hash_password
    from assetsentinel.db.engine import engine
    from assetsentinel.db.models import Organization, User
    from assetsentinel.db.repository import open_repository

    try:
        async with open_repository() as repo:
            if await repo.get_user_by_email(email):
                return None, None
            org = await repo.add(Organization(name=organization))
            user = await repo.add(
                User(
                    organization_id=org.id,
                    email=email,
                    full_name=full_name,
                    role="admin",
                    password_hash=hash_password(password),
                )
            )
            await repo.commit()
            return org.id, user.id
    finally:
        await engine.dispose()


@main.command()
def scan():
    """Run one maintenance scan (due plans, overdue tasks) and print the summary.

    No server is involved, so nothing is broadcast; connected clients see
    the new tasks on their next fetch.
    """
    summary = _run(_scan_impl())
    click.echo(json.dumps(summary, indent=2))


async def _scan_impl() -> dict:
    from dataclasses import asdict

    from assetsentinel.db.engine import engine
    from assetsentinel.services.scheduler import MaintenanceScheduler

    try:
        summary = await MaintenanceScheduler(hub=None).run_once()
    finally:
        await engine.dispose()
    return asdict(summary)


@main.command()
def status():
    """Show a running server's health and live connection counts."""
    _run(_status_impl())


async def _status_impl():
    try:
        async with httpx.AsyncClient(base_url=_api_url(), timeout=10.0) as c:
            r = await c.get("/api/v1/health")
            r.raise_for_status()
            health = r.json()
    except httpx.HTTPError as e:
        click.secho(f"Server unreachable at {_api_url()}: {e}", fg="red", err=True)
        sys.exit(1)

    color = "green" if health.get("status") == "healthy" else "yellow"
    click.secho(f"{health.get('status')} (v{health.get('version')})", fg=color, bold=True)
    for key in ("server", "postgres", "hub"):
        click.echo(f"  {key:<10} {health.get(key)}")
    connections = health.get("connections") or {}
    click.echo(f"  sessions   {sum(connections.values())}")
    for org_id, count in sorted(connections.items()):
        click.echo(f"    org {org_id:<6} {count}")


if __name__ == "__main__":
    main()
