"""Admin console CLI tool (admin-console)."""

import asyncio
import json
from datetime import datetime
from typing import Optional

import typer

from admin_backend.core import rbac

app = typer.Typer(name="admin-console", help="Marketplace admin console CLI")
roles_app = typer.Typer(help="Inspect the role/permission tables")
audit_app = typer.Typer(help="Audit trail commands")
db_app = typer.Typer(help="Database management commands")
app.add_typer(roles_app, name="roles")
app.add_typer(audit_app, name="audit")
app.add_typer(db_app, name="db")


@roles_app.command("list")
def roles_list():
    """List every role with its admin flag and permission count."""
    for role in rbac.Role:
        kind = "admin" if rbac.is_admin_role(role) else "-"
        typer.echo(f"{role.value:<20} {kind:<6} {len(rbac.permissions_for_role(role))}")


@roles_app.command("permissions")
def roles_permissions(role: str):
    """Show the permissions held by ROLE, with risk tiers."""
    normalized = rbac.normalize_role(role)
    if normalized.value != role:
        typer.echo(f"'{role}' resolves to '{normalized.value}'")
    for permission in sorted(rbac.permissions_for_role(normalized)):
        typer.echo(f"{permission:<36} {rbac.risk_level_of(permission).value}")


@app.command("check")
def check(role: str, permission: str):
    """Exit 0 if ROLE holds PERMISSION, 1 otherwise."""
    allowed = rbac.has_permission(role, permission)
    risk = rbac.risk_level_of(permission).value
    typer.echo(f"{'ALLOWED' if allowed else 'DENIED'} ({risk})")
    raise typer.Exit(code=0 if allowed else 1)


@audit_app.command("export")
def audit_export(
    action: Optional[str] = typer.Option(None),
    admin_id: Optional[str] = typer.Option(None),
    target_type: Optional[str] = typer.Option(None),
    start: Optional[datetime] = typer.Option(None),
    end: Optional[datetime] = typer.Option(None),
    format: str = typer.Option("json", help="json or csv"),
):
    """Print every matching audit entry, newest first."""
    from admin_backend.schemas.schemas import AuditFilters
    from admin_backend.services.audit_service import audit_trail, to_csv

    filters = AuditFilters(
        action=action, admin_id=admin_id, target_type=target_type, start=start, end=end,
    )
    entries = asyncio.run(audit_trail.export_all(filters))
    if format == "csv":
        typer.echo(to_csv(entries), nl=False)
    else:
        typer.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))


@db_app.command("init")
def db_init():
    """Create the audit and admin tables."""
    from admin_backend.db.session import init_db

    init_db()
    typer.echo("Tables created (or already exist)")


@db_app.command("seed")
def db_seed():
    """Seed the super-admin account."""
    from admin_backend.db.session import SessionLocal, init_db
    from admin_backend.db.seeds.seed_super_admin import seed_super_admin

    init_db()
    db = SessionLocal()
    try:
        admin = seed_super_admin(db)
    finally:
        db.close()
    typer.echo(f"Super admin ready: {admin.email}")


@app.command("token")
def token(admin_id: str, role: str, minutes: int = typer.Option(30)):
    """Mint a bearer token for local testing."""
    from datetime import timedelta
    from admin_backend.core.security import create_access_token

    normalized = rbac.normalize_role(role)
    typer.echo(create_access_token(
        {"sub": admin_id, "role": normalized.value}, timedelta(minutes=minutes),
    ))


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the admin console API."""
    import uvicorn
    uvicorn.run("admin_backend.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
