"""
Command Line Interface for the Aircraft Maintenance Tracker.
"""

from typing import Optional

import typer
import uvicorn
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import get_settings
from ..db.audit_service import AuditService
from ..db.base import get_database_url, get_session_local, init_database
from ..fleet.errors import NotFoundError
from ..fleet.services import TaskService

app = typer.Typer(help="Aircraft Maintenance Tracker - fleet condition and task records")
console = Console()


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    dev: bool = typer.Option(False, help="Run in development mode with reload"),
):
    """Start the HTTP API."""
    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    rprint(Panel.fit("✈️ Starting Aircraft Maintenance Tracker", style="bold blue"))
    console.print(f"🚀 Serving on http://{host}:{port}")
    uvicorn.run(
        "aircraft_maintenance.main:app",
        host=host,
        port=port,
        reload=dev,
        workers=1 if dev else settings.api_workers,
    )


@app.command("init-db")
def init_db():
    """Create all database tables."""
    init_database()
    console.print(f"✅ Tables created at {get_database_url()}")


@app.command()
def audit(
    entity_kind: str = typer.Argument(..., help="Aircraft, User, Issue or Task"),
    entity_id: str = typer.Argument(..., help="Entity ID"),
    limit: int = typer.Option(50, help="Maximum number of entries"),
):
    """Show the audit trail of an entity, newest first."""
    db = get_session_local()()
    try:
        entries = AuditService(db).query_by_entity(entity_kind, entity_id, limit=limit)
    finally:
        db.close()

    if not entries:
        console.print(f"No audit entries for {entity_kind}:{entity_id}")
        return

    table = Table(
        title=f"Audit trail for {entity_kind}:{entity_id}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Time", style="cyan")
    table.add_column("Action", style="yellow")
    table.add_column("Actor", style="green")
    table.add_column("Note")

    for entry in entries:
        table.add_row(
            entry.to_dict()["ts"] or "",
            entry.action,
            f"{entry.actor_kind}:{entry.actor_id}",
            entry.note or "",
        )

    console.print(table)


@app.command("check-hash")
def check_hash(
    task_id: str = typer.Argument(..., help="Task ID (numeric task number or record ID)"),
):
    """Recompute a task's verification hash and compare it with the stored one."""
    db = get_session_local()()
    try:
        service = TaskService(db)
        task = service.get_by_task_id(int(task_id)) if task_id.isdigit() else None
        record_id = task.id if task is not None else task_id
        try:
            valid = service.check_verification(record_id)
        except NotFoundError:
            console.print(f"❌ Task {task_id} not found")
            raise typer.Exit(code=2)
        stored = service.require(record_id).verification_hash
    finally:
        db.close()

    if stored is None:
        console.print(f"⚪ Task {task_id} has not been verified")
        raise typer.Exit(code=1)
    if valid:
        console.print(f"✅ Verification hash matches: {stored}")
    else:
        console.print(f"❌ Verification hash mismatch for task {task_id}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
