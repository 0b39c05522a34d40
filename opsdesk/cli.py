"""
Ops Desk CLI - Command line interface for running jobs and managing accounts.

Usage:
    opsdesk --help                 Show all commands
    opsdesk sync-authors           Sync the Texas Authors sheet
    opsdesk digest                 Send the daily digest
    opsdesk generate-deadlines     Create upcoming recurring deadlines
    opsdesk ser-reminders          Send SER reminder emails
    opsdesk create-user EMAIL      Create an account
    opsdesk seed                   Insert SLA definitions and templates
"""

import asyncio
import json

import typer

app = typer.Typer(
    name="opsdesk",
    help="Ops Desk CLI - jobs and account management",
    no_args_is_help=True,
)


def _print_success(message: str) -> None:
    typer.echo(f"  ✅ {message}")


def _print_error(message: str) -> None:
    """Print an error message to stderr."""
    typer.echo(f"❌ {message}", err=True)


def _run_job(job_name: str, build_job) -> None:
    """Run one job through the cron runner (so it is logged) and exit with its status."""
    from opsdesk.config import get_config, get_settings
    from opsdesk.core.database import get_session_factory
    from opsdesk.core.logging import setup_logging
    from opsdesk.jobs.runner import run_job

    setup_logging()
    settings = get_settings()
    job = build_job(settings, get_config())

    outcome = asyncio.run(
        run_job(job_name, job, get_session_factory(), timeout=settings.job_timeout_seconds)
    )
    typer.echo(json.dumps(outcome.body, indent=2, default=str))
    if not outcome.ok:
        _print_error(f"{job_name} failed ({outcome.status_code})")
        raise typer.Exit(1)
    _print_success(f"{job_name} finished in {outcome.duration_ms} ms")


@app.command("sync-authors")
def sync_authors():
    """Sync the Texas Authors spreadsheet into the directory."""
    from opsdesk.jobs.tasks import TEXAS_AUTHORS_SYNC_JOB, texas_authors_sync_job

    _run_job(TEXAS_AUTHORS_SYNC_JOB, texas_authors_sync_job)


@app.command()
def digest():
    """Build and send the daily digest (email, Slack, GHL)."""
    from opsdesk.jobs.tasks import DIGEST_JOB, digest_job

    _run_job(DIGEST_JOB, lambda settings, config: digest_job(config))


@app.command("generate-deadlines")
def generate_deadlines():
    """Create missing newsletter, events and magazine deadlines."""
    from opsdesk.jobs.tasks import DEADLINES_JOB, deadlines_job

    _run_job(DEADLINES_JOB, lambda settings, config: deadlines_job(config))


@app.command("ser-reminders")
def ser_reminders():
    """Send due and overdue reminders for Sponsored Editorial Reviews."""
    from opsdesk.jobs.tasks import SER_REMINDERS_JOB, ser_reminders_job

    _run_job(SER_REMINDERS_JOB, ser_reminders_job)


async def _create_user(email: str, name: str | None, password: str, admin: bool) -> str:
    from sqlalchemy import select

    from opsdesk.core.database import get_session_factory
    from opsdesk.core.security import hash_password
    from opsdesk.models.user import User, UserRole

    async with get_session_factory()() as session:
        existing = await session.execute(select(User).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise ValueError(f"User {email} already exists")
        user = User(
            email=email,
            name=name,
            role=UserRole.ADMIN if admin else UserRole.STAFF,
            password_hash=hash_password(password),
        )
        session.add(user)
        await session.commit()
        return str(user.id)


@app.command("create-user")
def create_user(
    email: str = typer.Argument(..., help="Sign-in email"),
    name: str | None = typer.Option(None, "--name", help="Display name"),
    admin: bool = typer.Option(False, "--admin", help="Grant the ADMIN role"),
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, confirmation_prompt=True
    ),
):
    """Create an account with a password."""
    from opsdesk.core.security import MIN_PASSWORD_LENGTH

    if len(password) < MIN_PASSWORD_LENGTH:
        _print_error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        raise typer.Exit(1)
    try:
        user_id = asyncio.run(_create_user(email.strip().lower(), name, password, admin))
    except ValueError as e:
        _print_error(str(e))
        raise typer.Exit(1) from e
    _print_success(f"Created {email} ({user_id})")


async def _set_password(email: str, password: str) -> bool:
    from sqlalchemy import select

    from opsdesk.core.database import get_session_factory
    from opsdesk.core.security import hash_password
    from opsdesk.models.user import User

    async with get_session_factory()() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            return False
        user.password_hash = hash_password(password)
        await session.commit()
        return True


@app.command("set-password")
def set_password(
    email: str = typer.Argument(..., help="Account email"),
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, confirmation_prompt=True
    ),
):
    """Reset an account's password."""
    from opsdesk.core.security import MIN_PASSWORD_LENGTH

    if len(password) < MIN_PASSWORD_LENGTH:
        _print_error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        raise typer.Exit(1)
    try:
        found = asyncio.run(_set_password(email.strip().lower(), password))
    except ValueError as e:
        _print_error(str(e))
        raise typer.Exit(1) from e
    if not found:
        _print_error(f"No user with email {email}")
        raise typer.Exit(1)
    _print_success(f"Password updated for {email}")


async def _seed() -> dict[str, int]:
    from opsdesk.core.database import get_session_factory
    from opsdesk.services.seed import seed_reference_data

    async with get_session_factory()() as session:
        counts = await seed_reference_data(session)
        await session.commit()
        return counts


@app.command()
def seed():
    """Insert default SLA definitions and trigger templates (existing rows kept)."""
    from opsdesk.core.logging import setup_logging

    setup_logging()
    counts = asyncio.run(_seed())
    _print_success(
        f"Seeded {counts['slaDefinitions']} SLA definitions, {counts['templates']} templates"
    )


@app.command()
def migrate():
    """Run database migrations (alembic upgrade head)."""
    import subprocess

    result = subprocess.run(["alembic", "upgrade", "head"], check=False)
    raise typer.Exit(result.returncode)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable hot reload"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
):
    """Start the API server."""
    import subprocess

    cmd = ["uvicorn", "opsdesk.main:app", "--host", "0.0.0.0", "--port", str(port)]
    if reload:
        cmd.append("--reload")

    subprocess.run(cmd, check=False)


if __name__ == "__main__":
    app()
