"""Typer CLI for Authsome."""

import asyncio
from typing import Optional

import typer
from rich.console import Console

app = typer.Typer(name="authsome", help="Authsome: tenant identity and session service")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Authsome API server."""
    import uvicorn
    from authsome.app import create_app

    console.print(f"[bold green]Starting Authsome on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command("init-db")
def init_db():
    """Create all tables in the configured database."""
    from authsome.deps import get_db

    async def _run() -> None:
        db = get_db()
        await db.init()
        try:
            await db.create_all()
        finally:
            await db.close()

    asyncio.run(_run())
    console.print("[bold green]Database initialized[/bold green]")


@app.command("purge-expired")
def purge_expired():
    """Delete expired sessions and one-time codes for all tenants."""
    from authsome.deps import get_db, get_otp_service, get_session_service

    async def _run() -> tuple[int, int]:
        db = get_db()
        await db.init()
        try:
            async with db.unit_of_work() as session:
                sessions = await get_session_service().purge_expired(session)
                otps = await get_otp_service().purge_expired(session)
        finally:
            await db.close()
        return sessions, otps

    sessions, otps = asyncio.run(_run())
    console.print(f"Purged [bold]{sessions}[/bold] sessions and [bold]{otps}[/bold] one-time codes")


@app.command("mint-token")
def mint_token(
    tenant_id: str = typer.Argument(..., help="Tenant id to use as the token subject"),
    ttl: Optional[int] = typer.Option(None, help="Lifetime in seconds (defaults to configured TTL)"),
):
    """Mint an access token for a tenant (offline, no DB required)."""
    from authsome.deps import get_token_service

    token = get_token_service().mint(tenant_id, ttl_seconds=ttl)
    console.print(token, soft_wrap=True)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Authsome server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
