"""Prompt construction for section generation."""

import re
from typing import Dict, List, Optional, Tuple

from analyzer.sections import SectionSpec
from contracts import DetectedStack, PackageManager, RepoData

_GITHUB_URL = re.compile(r"github\.com/([^/\s]+)/([^/\s#?]+)")

_INSTALL_COMMANDS: Dict[PackageManager, Tuple[str, str]] = {
    PackageManager.NPM: ("npm install", "npm run dev"),
    PackageManager.YARN: ("yarn install", "yarn dev"),
    PackageManager.PNPM: ("pnpm install", "pnpm dev"),
    PackageManager.PIP: ("pip install -r requirements.txt", ""),
    PackageManager.POETRY: ("poetry install", ""),
    PackageManager.GO: ("go mod download", "go run ."),
    PackageManager.CARGO: ("cargo build", "cargo run"),
}

MAX_LISTED_ROUTES = 10

BASE_RULES = """=== STRICT RULES ===
1. ONLY describe features supported by the project data below
2. DO NOT invent features, commands or environment variables
3. Use real scripts and dependencies when they are listed
4. Output clean Markdown with no meta-commentary, under 250 words"""

SECTION_INSTRUCTIONS: Dict[str, str] = {
    "header": (
        "Start with '# {project}'. {badges}Write a clear 1-2 sentence description of what the "
        "project does, a short Quick Start code block using: {commands}, and 3-4 highlights "
        "based only on actual dependencies."
    ),
    "features": (
        "Start with '## Features'. List features as '- **Name** - Description'. Each feature "
        "must be backed by a dependency, API route or component in the project data."
    ),
    "tech-stack": (
        "Start with '## Tech Stack'. Render a | Category | Technology | table with the "
        "framework ({primary}), the language ({language}) and only technologies present in "
        "the dependencies."
    ),
    "installation": (
        "Start with '## Installation'. Cover prerequisites for {language}, cloning {clone_url}, "
        "installing dependencies ({commands}) and copying the env template if one exists."
    ),
    "environment": (
        "Start with '## Environment Variables'. Use the EXACT variables from .env.example when "
        "provided, otherwise infer them from dependencies. Follow the code block with a "
        "| Variable | Description | Required | table."
    ),
    "scripts": (
        "Start with '## Available Scripts'. Render a | Command | Description | table that only "
        "includes scripts that exist in package.json."
    ),
    "api-docs": (
        "Start with '## API Reference'. Document the endpoints visible in the API routes with "
        "method, path and a one-line description. Do not invent endpoints."
    ),
    "deployment": (
        "Start with '## Deployment'. Describe the production build and how to run it for a "
        "{primary} project, then list the environment variables production needs."
    ),
    "docker": (
        "Start with '## Docker'. Show how to build and run the container image, and "
        "docker compose usage if a compose file is listed."
    ),
    "testing": (
        "Start with '## Testing'. Show the commands that run the test suite using the "
        "project's actual test tooling."
    ),
    "contributing": (
        "Start with '## Contributing'. Give the fork, branch, commit, push and pull request "
        "steps followed by short guidelines."
    ),
    "license": (
        "Start with '## License'. State the license and link the LICENSE file."
    ),
}


def github_repo(repo_url: Optional[str]) -> Optional[Tuple[str, str]]:
    """Extract (owner, repo) from a GitHub URL."""
    if not repo_url:
        return None
    match = _GITHUB_URL.search(repo_url)
    if not match:
        return None
    owner, repo = match.groups()
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return owner, repo


def badge_lines(repo_url: Optional[str]) -> List[str]:
    """shields.io badge Markdown for a GitHub repository, empty otherwise."""
    info = github_repo(repo_url)
    if not info:
        return []
    owner, repo = info
    return [
        f"![License](https://img.shields.io/github/license/{owner}/{repo})",
        f"![Stars](https://img.shields.io/github/stars/{owner}/{repo}?style=social)",
        f"![Issues](https://img.shields.io/github/issues/{owner}/{repo})",
    ]


def build_context(
    stack: DetectedStack,
    project_name: str,
    repo_data: Optional[RepoData] = None,
    repo_url: Optional[str] = None,
) -> str:
    """Summarize the project for the generation backend."""
    lines = [
        f"=== PROJECT: {project_name} ===",
        f"Stack: {stack.primary.value} ({stack.language})",
        f"Package Manager: {stack.package_manager.value}",
    ]
    if repo_url:
        lines.append(f"Repository: {repo_url}")
    if stack.frameworks:
        lines.append(f"Frameworks: {', '.join(stack.frameworks)}")
    if stack.domain_hints:
        lines.append(f"Domain: {', '.join(stack.domain_hints)}")

    if repo_data is None:
        if stack.dependencies:
            lines.append(f"\nDEPENDENCIES ({len(stack.dependencies)}):")
            lines.append(", ".join(stack.dependencies))
        lines.append("\nNo repository data available.")
        return "\n".join(lines)

    if repo_data.structure:
        routes = [path for path in repo_data.structure if "api/" in path]
        if routes:
            lines.append("\nAPI ROUTES:")
            lines.extend(f"  - {route}" for route in routes[:MAX_LISTED_ROUTES])
        lines.append(f"\nFILES: {len(repo_data.structure)} total")

    pkg = repo_data.package_json or {}
    if pkg:
        lines.append("\n=== PACKAGE.JSON ===")
        for field in ("description", "name", "version"):
            if pkg.get(field):
                lines.append(f"{field.capitalize()}: {pkg[field]}")
        if isinstance(pkg.get("scripts"), dict):
            lines.append("\nSCRIPTS:")
            lines.extend(f"  {name}: {cmd}" for name, cmd in pkg["scripts"].items())
        for field, title in (("dependencies", "DEPENDENCIES"), ("devDependencies", "DEV DEPENDENCIES")):
            if isinstance(pkg.get(field), dict):
                lines.append(f"\n{title} ({len(pkg[field])}):")
                lines.append(", ".join(pkg[field]))
    elif stack.dependencies:
        lines.append(f"\nDEPENDENCIES ({len(stack.dependencies)}):")
        lines.append(", ".join(stack.dependencies))

    if repo_data.env_example:
        lines.append("\n=== .ENV.EXAMPLE ===")
        lines.append(repo_data.env_example)

    lines.append("\n=== DETECTED FEATURES ===")
    if repo_data.has_docker or stack.has_docker:
        lines.append("- Docker")
    if repo_data.has_ci or stack.has_ci:
        lines.append("- CI/CD")
    if repo_data.has_tests or stack.has_testing:
        lines.append("- Tests")

    return "\n".join(lines)


def build_section_prompt(
    section: SectionSpec,
    project_name: str,
    stack: DetectedStack,
    context: Optional[str] = None,
    repo_url: Optional[str] = None,
) -> str:
    """Instruction text asking a backend for one README section."""
    badges = badge_lines(repo_url)
    install, run = _INSTALL_COMMANDS.get(stack.package_manager, ("", ""))
    commands = ", ".join(c for c in (install, run) if c) or "the project's own setup commands"
    template = SECTION_INSTRUCTIONS.get(
        section.id,
        f"Start with '## {section.name}' and write the section for this project.",
    )
    instructions = template.format(
        project=project_name,
        badges="Place these badges under the title, exactly as given. " if badges else "",
        commands=commands,
        primary=stack.primary.value,
        language=stack.language,
        clone_url=repo_url or f"https://github.com/username/{project_name}.git",
    )

    parts = [
        "You are a technical writer creating a README section.",
        BASE_RULES,
        "=== PROJECT DATA ===\n" + (context or f"Project: {project_name}, Stack: {stack.primary.value}"),
    ]
    if badges:
        parts.append("Badges (use exactly):\n" + "\n".join(badges))
    parts.append(f'TASK: Generate the "{section.name}" section.\n{instructions}')
    return "\n\n".join(parts)
