#!/usr/bin/env python3
"""
Profile Scout - command line entry point.

Runs the same services as the web API, in-process.

    profile-scout serve
    profile-scout search "python developers in berlin"
    profile-scout research https://www.linkedin.com/in/alice "Alice Smith" --wait
    profile-scout job <job_id>
    profile-scout health
"""

import argparse
import json
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box
from pydantic import ValidationError

from config import ConfigError, configure_logging, load_settings
from models import ResearchStatus, is_profile_url, normalize_identifier
from providers.base import ProviderError
from repositories.base import JobNotFoundError, StoreError
from routes.errors import validation_message

console = Console()

STATUS_STYLES = {
    ResearchStatus.QUEUED: "dim",
    ResearchStatus.PROCESSING: "yellow",
    ResearchStatus.COMPLETED: "green",
    ResearchStatus.FAILED: "red",
}


def show_profiles(response):
    """Render a search response"""
    if not response.profiles:
        console.print("[dim]No profiles found.[/dim]")
        return

    table = Table(title=f"Profiles ({response.cached} cached, {response.fetched} fetched)", box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Headline")
    table.add_column("Location", style="dim")
    table.add_column("Identifier", style="dim")

    for p in response.profiles:
        table.add_row(p.display_name, p.headline or "", p.location or "", p.identifier)
    console.print(table)


def show_job(job):
    """Render a research job snapshot"""
    style = STATUS_STYLES.get(job.status, "white")
    console.print(f"Job [bold]{job.job_id}[/bold]  [{style}]{job.status.value}[/{style}]")
    console.print(f"[dim]{job.subject_name} ({job.identifier})[/dim]")

    if job.result is not None:
        console.print(Panel(job.result.report, title="Report", box=box.ROUNDED))
        for source in job.result.sources:
            console.print(f"  [link]{source.url}[/link]")
    if job.error_detail is not None:
        console.print(f"[red]{job.error_detail}[/red]")
    if job.metadata:
        shown = {k: v for k, v in job.metadata.items() if k != "traceback"}
        console.print(f"[dim]{json.dumps(shown, default=str)}[/dim]")


def cmd_serve(settings, args):
    from app import create_app
    app = create_app(settings)
    console.print(f"[green]Serving on http://{settings.host}:{settings.port}[/green]")
    app.run(host=settings.host, port=settings.port, debug=False, threaded=True)
    return 0


def cmd_search(services, args):
    response = services.search.search(args.query)
    show_profiles(response)
    return 0


def cmd_research(services, args):
    identifier = normalize_identifier(args.url)
    if identifier is None:
        console.print(f"[red]Not a profile URL: {args.url}[/red]")
        return 2

    reference = args.url.strip() if is_profile_url(args.url) else None
    job_id = services.research.create(identifier, args.name, reference=reference)
    console.print(f"Queued research job [bold]{job_id}[/bold]")

    if args.wait:
        # Only this job; other queued jobs belong to the server's workers
        with console.status("Researching..."):
            job = services.research.execute(job_id)
        show_job(job)
    return 0


def cmd_job(services, args):
    show_job(services.research.get(args.job_id))
    return 0


def cmd_health(services, args):
    ok = services.repository.ping()
    label = "[green]up[/green]" if ok else "[red]down[/red]"
    console.print(f"Store ({services.settings.store_backend}): {label}")
    if ok:
        for key, value in services.repository.info().items():
            console.print(f"  [dim]{key}:[/dim] {value}")
    return 0 if ok else 1


COMMANDS = {
    "search": cmd_search,
    "research": cmd_research,
    "job": cmd_job,
    "health": cmd_health,
}


def build_parser():
    parser = argparse.ArgumentParser(prog="profile-scout", description="Profile search and deep research")
    parser.add_argument("--config", help="YAML settings file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the web API")

    p = sub.add_parser("search", help="Search profiles by free text")
    p.add_argument("query")

    p = sub.add_parser("research", help="Start a research job")
    p.add_argument("url", help="Profile URL")
    p.add_argument("name", help="Subject's name")
    p.add_argument("--wait", action="store_true", help="Run the job here and show the report")

    p = sub.add_parser("job", help="Show a research job")
    p.add_argument("job_id")

    sub.add_parser("health", help="Check the cache store")
    return parser


def cli(argv=None):
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return 2
    configure_logging(settings.log_level)

    if args.command == "serve":
        return cmd_serve(settings, args)

    from app import build_services
    services = build_services(settings)
    try:
        return COMMANDS[args.command](services, args)
    except ValidationError as e:
        console.print(f"[red]{validation_message(e)}[/red]")
        return 2
    except JobNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        return 1
    except (ProviderError, StoreError) as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        return 1
    finally:
        services.shutdown()


if __name__ == "__main__":
    sys.exit(cli())
