"""Defensive manifest parsers.

Every parser returns a ``{dependency: version}`` mapping, or ``None`` when the
manifest cannot be parsed. None of them raise on malformed input.
"""

import json
import re
import tomllib
from typing import Any, Dict, Iterable, Optional

_REQUIREMENT_SPLIT = re.compile(r"(===|==|~=|!=|<=|>=|<|>)")
_EXTRAS = re.compile(r"\[.*?\]")


def normalize_python_name(name: str) -> str:
    """PEP 503 style normalisation so ``Flask_Login`` and ``flask-login`` compare equal."""
    return re.sub(r"[-_.]+", "-", name).lower()


def parse_package_json(content: str) -> Optional[Dict[str, str]]:
    """Merge ``dependencies`` and ``devDependencies`` of a package.json."""
    try:
        data = json.loads(content)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    deps: Dict[str, str] = {}
    for section in ("dependencies", "devDependencies"):
        values = data.get(section)
        if not isinstance(values, dict):
            continue
        for name, version in values.items():
            deps[str(name)] = str(version)
    return deps


def parse_requirement(spec: str) -> Optional[tuple]:
    """Split one PEP 508 requirement string into ``(name, version)``."""
    text = spec.split(";", 1)[0].strip()
    if not text or text.startswith(("#", "-")) or "://" in text:
        return None
    text = _EXTRAS.sub("", text)
    parts = _REQUIREMENT_SPLIT.split(text, 1)
    name = parts[0].strip()
    if not name or not re.match(r"^[A-Za-z0-9][A-Za-z0-9._-]*$", name):
        return None
    version = "".join(parts[1:]).strip() if len(parts) > 1 else "*"
    return normalize_python_name(name), version or "*"


def parse_requirements_txt(content: str) -> Dict[str, str]:
    deps: Dict[str, str] = {}
    for line in (content or "").splitlines():
        stripped = line.split(" #", 1)[0].strip()
        parsed = parse_requirement(stripped)
        if parsed:
            deps[parsed[0]] = parsed[1]
    return deps


def _load_toml(content: str) -> Optional[Dict[str, Any]]:
    try:
        data = tomllib.loads(content or "")
    except (tomllib.TOMLDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def _table_version(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return str(value.get("version", "*"))
    return "*"


def parse_pyproject(content: str) -> Optional[Dict[str, str]]:
    """PEP 621 dependencies, optional dependencies and Poetry dependency tables."""
    data = _load_toml(content)
    if data is None:
        return None

    deps: Dict[str, str] = {}
    project = data.get("project")
    if isinstance(project, dict):
        raw = project.get("dependencies")
        specs = list(raw) if isinstance(raw, list) else []
        optional = project.get("optional-dependencies") or {}
        if isinstance(optional, dict):
            for values in optional.values():
                if isinstance(values, list):
                    specs.extend(values)
        for spec in specs:
            parsed = parse_requirement(spec) if isinstance(spec, str) else None
            if parsed:
                deps[parsed[0]] = parsed[1]

    tool = data.get("tool")
    poetry = tool.get("poetry") if isinstance(tool, dict) else None
    if isinstance(poetry, dict):
        tables = [poetry.get("dependencies"), poetry.get("dev-dependencies")]
        groups = poetry.get("group")
        if isinstance(groups, dict):
            tables.extend(g.get("dependencies") for g in groups.values() if isinstance(g, dict))
        for table in tables:
            if not isinstance(table, dict):
                continue
            for name, value in table.items():
                if name.lower() == "python":
                    continue
                deps[normalize_python_name(name)] = _table_version(value)
    return deps


def parse_pipfile(content: str) -> Optional[Dict[str, str]]:
    data = _load_toml(content)
    if data is None:
        return None
    deps: Dict[str, str] = {}
    for section in ("packages", "dev-packages"):
        table = data.get(section)
        if isinstance(table, dict):
            for name, value in table.items():
                deps[normalize_python_name(name)] = _table_version(value)
    return deps


def parse_go_mod(content: str) -> Dict[str, str]:
    """Module requirements from single-line and block ``require`` directives."""
    deps: Dict[str, str] = {}
    in_block = False
    for raw in (content or "").splitlines():
        line = raw.split("//", 1)[0].strip()
        if not line:
            continue
        if in_block:
            if line == ")":
                in_block = False
                continue
            _add_go_requirement(deps, line.split())
        elif line.startswith("require ("):
            in_block = True
        elif line.startswith("require "):
            _add_go_requirement(deps, line.split()[1:])
    return deps


def _add_go_requirement(deps: Dict[str, str], parts: Iterable[str]) -> None:
    parts = list(parts)
    if len(parts) >= 2:
        deps[parts[0]] = parts[1]
    elif parts:
        deps[parts[0]] = "*"


def parse_cargo_toml(content: str) -> Optional[Dict[str, str]]:
    data = _load_toml(content)
    if data is None:
        return None
    deps: Dict[str, str] = {}
    for section in ("dependencies", "dev-dependencies"):
        table = data.get(section)
        if isinstance(table, dict):
            for name, value in table.items():
                deps[name] = _table_version(value)
    return deps
