#!/usr/bin/env python3
"""docsmith CLI - README section generation from a project's files.

Usage:
    # Classify a local project
    python main.py analyze ./my-project

    # Generate one section
    python main.py generate ./my-project --section installation --project my-project

    # Show which backends are configured
    python main.py providers

    # Run the HTTP service
    python main.py serve --port 8000
"""

import json
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from analyzer import SECTIONS
from config import settings
from contracts import CallerIdentity, ProjectFile, RepoData, UserTier
from logging_setup import configure_logging
from orchestrator import GenerationError, InputError, PolicyViolation, build_pipeline
from providers import list_providers as get_available_providers


console = Console()

SKIPPED_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build", "target", ".next"}

# Files whose content the analyzer reads; everything else contributes its name only
CONTENT_FILES = {
    "package.json",
    "requirements.txt",
    "pyproject.toml",
    "Pipfile",
    "setup.py",
    "go.mod",
    "Cargo.toml",
    ".env.example",
    ".env.sample",
    ".env.template",
}

MAX_FILES = 2000


def read_project_files(project_path: str) -> List[ProjectFile]:
    """Collect the file listing of a project directory.

    Args:
        project_path: Path to the project root

    Returns:
        ProjectFile entries with content for manifest files
    """
    root = Path(project_path)
    if not root.is_dir():
        raise click.BadParameter(f"{project_path} is not a directory", param_hint="PATH")

    files: List[ProjectFile] = []
    for file in sorted(root.rglob("*")):
        if len(files) >= MAX_FILES:
            break
        relative = file.relative_to(root)
        if any(part in SKIPPED_DIRS for part in relative.parts) or not file.is_file():
            continue
        content = ""
        if file.name in CONTENT_FILES:
            content = file.read_text(encoding="utf-8", errors="replace")
        files.append(ProjectFile(name=relative.as_posix(), content=content))
    return files


def _repo_data(files: List[ProjectFile]) -> RepoData:
    by_name = {f.name: f.content for f in files}
    package_json = None
    if by_name.get("package.json"):
        try:
            decoded = json.loads(by_name["package.json"])
        except ValueError:
            decoded = None
        package_json = decoded if isinstance(decoded, dict) else None
    return RepoData(
        structure=[f.name for f in files],
        package_json=package_json,
        env_example=by_name.get(".env.example") or None,
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def cli(verbose: bool):
    """docsmith: README documentation generator.

    Detects a project's technology stack and generates README sections
    through a chain of LLM backends.
    """
    configure_logging(verbose=verbose, level=settings.log_level)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False))
def analyze(path: str):
    """Detect the stack of the project at PATH."""
    files = read_project_files(path)
    result = build_pipeline().analyze([f.model_dump() for f in files])
    stack = result.stack

    table = Table(title=f"Stack of {Path(path).resolve().name}", show_header=False)
    table.add_row("Primary", stack.primary.value)
    table.add_row("Language", stack.language)
    table.add_row("Package manager", stack.package_manager.value)
    table.add_row("Frameworks", ", ".join(stack.frameworks) or "-")
    table.add_row("Docker / CI / Tests", f"{stack.has_docker} / {stack.has_ci} / {stack.has_testing}")
    table.add_row("Domain hints", ", ".join(stack.domain_hints) or "-")
    table.add_row("Files", str(len(result.file_names)))
    console.print(table)
    console.print(f"\n[bold]Eligible sections:[/bold] {', '.join(result.eligible_sections)}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--section", "-s", "section_id",
    required=True,
    type=click.Choice([s.id for s in SECTIONS]),
    help="Section to generate"
)
@click.option("--project", "-p", "project_name", default=None, help="Project name (default: directory name)")
@click.option("--repo-url", default=None, help="Repository URL used for links and badges")
@click.option(
    "--tier",
    type=click.Choice([t.value for t in UserTier]),
    default=UserTier.ELEVATED.value,
    help="Tier to generate as (default: elevated)"
)
@click.option("--backend", "-b", default=None, help="Preferred backend (e.g. groq, gemini, openai)")
@click.option("--output", "-o", "output_path", default=None, help="Write the section to this file")
def generate(
    path: str,
    section_id: str,
    project_name: Optional[str],
    repo_url: Optional[str],
    tier: str,
    backend: Optional[str],
    output_path: Optional[str],
):
    """Generate one README section for the project at PATH."""
    project_name = project_name or Path(path).resolve().name
    files = read_project_files(path)
    pipeline = build_pipeline()
    stack = pipeline.analyze([f.model_dump() for f in files]).stack
    caller = CallerIdentity(network_address="cli", session_id="cli", tier=UserTier(tier))

    payload = {
        "section_id": section_id,
        "project_name": project_name,
        "stack": stack.model_dump(),
        "repo_url": repo_url,
        "repo_data": _repo_data(files).model_dump(),
        "preferred_backend": backend,
    }

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Generating {section_id}...", total=None)
        try:
            result = pipeline.generate_section(payload, caller)
        except PolicyViolation as exc:
            console.print(f"[red]Refused ({exc.reason.value}):[/red] {exc.message}")
            sys.exit(1)
        except InputError as exc:
            console.print(f"[red]Invalid request:[/red] {exc.message}")
            sys.exit(1)
        except GenerationError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            sys.exit(1)

    if output_path:
        Path(output_path).write_text(result.content + "\n", encoding="utf-8")
        console.print(f"[bold]Section saved to:[/bold] {output_path}")
    else:
        console.print(Markdown(result.content))

    source = "cache" if result.cached else "fresh"
    console.print(Panel.fit(
        f"[dim]Provider:[/dim] {result.provider} ({source})\n[dim]Why:[/dim] {result.explanation}",
        border_style="blue",
    ))


@cli.command()
def providers():
    """List generation backends and whether they are configured."""
    console.print("[bold]Generation backends:[/bold]\n")
    for name, available in get_available_providers().items():
        status = "[green]✓ Ready[/green]" if available else "[red]✗ Not configured[/red]"
        console.print(f"  {name:12} {status}")
    console.print("\n[dim]Set API keys via environment variables:[/dim]")
    console.print("  GROQ_API_KEY, GOOGLE_API_KEY, OPENAI_API_KEY, ANTHROPIC_API_KEY, DEEPSEEK_API_KEY")
    console.print("  DOCSMITH_OLLAMA_BASE_URL, DOCSMITH_LITELLM_MODEL")


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
def serve(host: str, port: int):
    """Run the HTTP service."""
    from service import run_service

    console.print(f"[bold blue]docsmith[/bold blue] serving on http://{host}:{port}")
    run_service(host=host, port=port, log_level=settings.log_level.lower())


def main():
    cli()


if __name__ == "__main__":
    main()
