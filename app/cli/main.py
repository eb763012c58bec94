from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import uvicorn
from rich.console import Console

from app.auth.tokens import ROLES, create_token
from app.config import get_settings
from app.services.scratch_sweeper import ScratchSweeper


app = typer.Typer(help="HTML Arcade CLI")
console = Console()


@app.command()
def serve(
	host: str = typer.Option("127.0.0.1", help="Host interface"),
	port: int = typer.Option(8000, help="Port to bind"),
	reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
	"""Start the API server."""

	app_dir = Path(__file__).resolve().parents[2]
	uvicorn.run(
		"app.main:create_app",
		host=host,
		port=port,
		reload=reload,
		factory=True,
		app_dir=str(app_dir),
	)


@app.command()
def token(
	principal_id: str = typer.Argument(..., help="User id to embed in the token"),
	role: str = typer.Option("user", help="user or admin"),
	ttl_minutes: Optional[int] = typer.Option(None, help="Lifetime in minutes (default from settings)"),
):
	"""Issue a signed bearer token for local testing."""
	if role not in ROLES:
		console.print(f"[red]Unknown role {role!r}; expected one of {', '.join(ROLES)}[/red]")
		raise typer.Exit(code=1)
	settings = get_settings()
	ttl = ttl_minutes if ttl_minutes is not None else settings.token_ttl_minutes
	typer.echo(create_token(principal_id, role, settings.secret_key, ttl))


@app.command()
def sweep(
	max_age: Optional[int] = typer.Option(None, help="Override scratch_max_age_seconds"),
):
	"""Remove stale upload and extraction scratch files once."""
	settings = get_settings()
	sweeper = ScratchSweeper(
		settings.scratch_dir,
		max_age_seconds=max_age if max_age is not None else settings.scratch_max_age_seconds,
		interval_seconds=settings.scratch_sweep_interval_seconds,
	)
	removed = sweeper.sweep()
	console.print(f"[green]Removed {len(removed)} stale entries from {settings.scratch_dir}[/green]")


@app.command()
def version():
	"""Show version."""
	console.print(f"{get_settings().app_name} {get_settings().app_version}")


if __name__ == "__main__":
	app()
