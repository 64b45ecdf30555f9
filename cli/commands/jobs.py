"""Job inspection commands."""

from typing import Optional

import typer

from doccrawl.db import get_connection, init_db
from doccrawl.db.jobs import get_job, job_summary, list_jobs

jobs_app = typer.Typer(help="Inspect crawl jobs.", no_args_is_help=True)


def _progress_line(job) -> str:
    return (
        f"{job.urls_processed}/{job.total_urls} "
        f"({job.progress_percentage:.0f}%)  "
        f"scraped={job.items_scraped} failed={job.urls_failed}"
    )


@jobs_app.command("list")
def jobs_list(
    status: Optional[str] = typer.Option(None, "--status", help="Filter by status."),
    limit: int = typer.Option(20, "--limit", help="Maximum jobs to show."),
) -> None:
    """List recent jobs, newest first."""
    conn = get_connection()
    init_db(conn)

    try:
        jobs = list_jobs(conn, status=status, limit=limit)
        summary = job_summary(conn)
    finally:
        conn.close()

    if not jobs:
        typer.echo("No jobs found.")
        return

    for job in jobs:
        typer.echo(f"  {job.id}  [{job.status}]  {job.section_slug}  {_progress_line(job)}")
    typer.echo(
        f"Total {summary['total']}: {summary['pending']} pending, "
        f"{summary['running']} running, {summary['completed']} completed, "
        f"{summary['failed']} failed"
    )


@jobs_app.command("show")
def jobs_show(
    job_id: str = typer.Argument(..., help="Job id."),
) -> None:
    """Show one job in detail."""
    conn = get_connection()
    init_db(conn)

    try:
        job = get_job(conn, job_id)
    finally:
        conn.close()

    if job is None:
        typer.echo(f"❌ Job not found: {job_id}")
        raise typer.Exit(code=1)

    typer.echo(f"Job      : {job.id}")
    typer.echo(f"Section  : {job.section_slug}")
    typer.echo(f"Status   : {job.status}")
    typer.echo(f"Progress : {_progress_line(job)}")
    typer.echo(
        f"Items    : new={job.items_new} updated={job.items_updated} "
        f"unchanged={job.items_unchanged}"
    )
    if job.error_message:
        typer.echo(f"Error    : {job.error_message}")
