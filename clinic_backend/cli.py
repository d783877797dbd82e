"""Clinic backend CLI tool (clinicctl)."""

import typer

app = typer.Typer(name="clinicctl", help="Clinic backend CLI")
db_app = typer.Typer(help="Database management commands")
roles_app = typer.Typer(help="Role membership commands")
app.add_typer(db_app, name="db")
app.add_typer(roles_app, name="roles")


@db_app.command("init")
def db_init():
    """Create all tables on the configured database."""
    from clinic_backend.db.base import Base
    from clinic_backend.db.session import engine
    import clinic_backend.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    typer.echo("Tables created")


@db_app.command("seed")
def db_seed():
    """Seed the permission catalog, predefined roles and the admin login."""
    from clinic_backend.db.session import SessionLocal
    from clinic_backend.db.seeds.seed_roles import seed_permissions_and_roles
    from clinic_backend.db.seeds.seed_admin import seed_admin

    db = SessionLocal()
    try:
        seed_permissions_and_roles(db)
        seed_admin(db)
    finally:
        db.close()
    typer.echo("All seeds applied")


@roles_app.command("grant")
def grant_role(
    email: str = typer.Argument(..., help="Account email"),
    role_name: str = typer.Argument(..., help="Role to add the account to"),
):
    """Add an account to a role."""
    from clinic_backend.core.exceptions import ClinicError
    from clinic_backend.db.session import SessionLocal, transaction
    from clinic_backend.services.identity_service import identity_service

    db = SessionLocal()
    try:
        user = identity_service.find_by_email(db, email)
        if user is None:
            typer.echo(f"No account for {email}", err=True)
            raise typer.Exit(code=1)
        with transaction(db):
            identity_service.add_to_role(db, user.id, role_name)
    except ClinicError as exc:
        typer.echo(exc.message, err=True)
        raise typer.Exit(code=1)
    finally:
        db.close()
    typer.echo(f"{email} added to {role_name}")


@roles_app.command("show")
def show_permissions(email: str = typer.Argument(..., help="Account email")):
    """Print the roles and effective permissions of an account."""
    from clinic_backend.db.session import SessionLocal
    from clinic_backend.services.identity_service import identity_service
    from clinic_backend.services.permission_service import permission_service

    db = SessionLocal()
    try:
        user = identity_service.find_by_email(db, email)
        if user is None:
            typer.echo(f"No account for {email}", err=True)
            raise typer.Exit(code=1)
        info = permission_service.get_user_role_info(db, user.id)
    finally:
        db.close()
    typer.echo(f"roles: {', '.join(info['roles']) or '-'}")
    for name in info["permissions"]:
        typer.echo(f"  {name}")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the FastAPI server."""
    import uvicorn
    uvicorn.run("clinic_backend.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
