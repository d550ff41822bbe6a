import asyncio
import typer
from rich.table import Table
import logging
import sys
from uuid import UUID
from sqlalchemy.exc import SQLAlchemyError
if sys.platform == "win32":
    # SelectorEventLoop вместо ProactorEventLoop по умолчанию в Windows (asyncpg)
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
from dms_data_client.config import get_settings
from dms_data_client import create_data_client, create_engine_for
from dms_data_client.exceptions import DataClientError
from dms_data_client.models.user import UserCreate
from dms_data_client.utils.cli_utils import get_rich_console

from dms_data_client.db.base import create_schema


app = typer.Typer(help="CLI for dms-data-client management.")
logger = logging.getLogger(__name__)
console = get_rich_console()

@app.command()
def init():
    """
    Initializes all necessary services: creates DB tables and ensures the versioned MinIO bucket exists.
    """
    console.rule("[bold cyan]Service Initialization[/bold cyan]")

    with console.status("Creating database tables...", spinner="dots"):
        async def _create_tables():
            try:
                engine = create_engine_for(get_settings().postgres)
                await create_schema(engine)
                await engine.dispose()
                console.log("[bold green]✔[/bold green] Database tables created successfully.")
            except (SQLAlchemyError, OSError) as e:
                console.log(f"[bold red]✖[/bold red] Database initialization FAILED: {e}")
                raise typer.Exit(code=1)

        asyncio.run(_create_tables())

    with console.status("Initializing MinIO storage bucket...", spinner="dots"):
        async def _init_storage():
            client = create_data_client()
            try:
                await client.storage.check_connection()
                console.log(f"[bold green]✔[/bold green] MinIO bucket '{client.storage.bucket}' is ready.")
            except DataClientError as e:
                console.log(f"[bold red]✖[/bold red] MinIO storage initialization FAILED: {e}")
                raise typer.Exit(code=1)
            finally:
                await client.aclose()
        asyncio.run(_init_storage())

    console.print("\n[bold green]✅ All services initialized successfully![/bold green]")

@app.command()
def check():
    """Checks connectivity to PostgreSQL and the MinIO bucket; exits with code 1 if any service is down."""
    console.rule("[bold cyan]Connection Check[/bold cyan]")

    async def _check():
        client = create_data_client()
        try:
            return await client.check_connections(), client.storage.bucket
        finally:
            await client.aclose()

    statuses, bucket = asyncio.run(_check())

    table = Table(show_header=True, header_style="bold")
    table.add_column("Service")
    table.add_column("Status")
    table.add_column("Details", overflow="fold")
    healthy = True
    for key, label in (("postgres", "PostgreSQL"), ("minio", f"MinIO ({bucket})")):
        status = statuses.get(key, "unknown error")
        if status == "ok":
            table.add_row(label, "[bold green]✔ OK[/bold green]", "")
        else:
            healthy = False
            table.add_row(label, "[bold red]✖ FAILED[/bold red]", status.removeprefix("failed: "))
    console.print(table)

    if not healthy:
        raise typer.Exit(code=1)

@app.command("create-user")
def create_user(
    username: str = typer.Argument(..., help="Unique username."),
    email: str = typer.Argument(..., help="Unique email."),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    manager: bool = typer.Option(False, "--manager", help="Create the user as a manager."),
):
    """Creates a user (optionally a manager)."""
    async def _create():
        client = create_data_client()
        try:
            return await client.create_user(
                UserCreate(username=username, email=email, password=password, is_manager=manager)
            )
        finally:
            await client.aclose()
    try:
        user = asyncio.run(_create())
    except DataClientError as e:
        console.print(f"[bold red]✖[/bold red] {e.name}: {e.message}")
        raise typer.Exit(code=1)
    console.print(f"[bold green]✔[/bold green] Created user '{user.username}' ({user.user_id}), manager={user.is_manager}")


def _set_manager(user_id: UUID, promote: bool):
    async def _run():
        client = create_data_client()
        try:
            if promote:
                return await client.promote_user(user_id)
            return await client.demote_user(user_id)
        finally:
            await client.aclose()
    try:
        user = asyncio.run(_run())
    except DataClientError as e:
        console.print(f"[bold red]✖[/bold red] {e.name}: {e.message}")
        raise typer.Exit(code=1)
    state = "promoted to manager" if promote else "demoted from manager"
    console.print(f"[bold green]✔[/bold green] User '{user.username}' {state}.")


@app.command()
def promote(user_id: UUID = typer.Argument(..., help="User id.")):
    """Makes a user a manager and grants full capabilities on all of their file permissions."""
    _set_manager(user_id, True)


@app.command()
def demote(user_id: UUID = typer.Argument(..., help="User id.")):
    """Removes manager status and clears all capabilities on the user's file permissions."""
    _set_manager(user_id, False)


if __name__ == "__main__":
    app()
