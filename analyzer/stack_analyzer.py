"""Heuristic technology-stack classifier.

Classifies a project from its raw file listing and selected file contents.
Ecosystem sub-detectors run in a fixed priority order, each gated on its
manifest file:

1. JavaScript/TypeScript (package.json)
2. Python (requirements.txt, pyproject.toml, Pipfile, setup.py, manage.py)
3. Go (go.mod)
4. Rust (Cargo.toml)

The first gated-in detector decides the primary stack, language, package
manager, frameworks and dependencies. Manifests of later ecosystems in a
polyglot repository are not merged.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from contracts import DetectedStack, PackageManager, ProjectFile, StackType
from logging_setup import get_logger

from .domain_hints import extract_domain_hints
from .manifests import (
    normalize_python_name,
    parse_cargo_toml,
    parse_go_mod,
    parse_package_json,
    parse_pipfile,
    parse_pyproject,
    parse_requirements_txt,
)

logger = get_logger("analyzer")

FileInput = Union[ProjectFile, Mapping[str, Any]]


class _FileIndex:
    """Normalised view over the submitted files with memoised manifest parsing."""

    def __init__(self, files: Iterable[FileInput]):
        self.entries: List[Tuple[str, str]] = []
        for item in files or []:
            if isinstance(item, ProjectFile):
                name, content = item.name, item.content
            elif isinstance(item, Mapping):
                name, content = item.get("name"), item.get("content", "")
            else:
                continue
            if not isinstance(name, str) or not name.strip():
                continue
            path = name.replace("\\", "/").strip()
            while path.startswith("./"):
                path = path[2:]
            self.entries.append((path, content if isinstance(content, str) else ""))
        self.paths = [path for path, _ in self.entries]
        self._parsed: Dict[str, Optional[Dict[str, str]]] = {}

    def find(self, filename: str) -> Optional[str]:
        """Content of the shallowest file called ``filename``, or None if absent."""
        matches = [
            (path.count("/"), position, content)
            for position, (path, content) in enumerate(self.entries)
            if path == filename or path.endswith("/" + filename)
        ]
        if not matches:
            return None
        return min(matches)[2]

    def has(self, filename: str) -> bool:
        return self.find(filename) is not None

    def any_path(self, predicate: Callable[[str], bool]) -> bool:
        return any(predicate(path) for path in self.paths)

    def parsed(self, filename: str, parser: Callable[[str], Optional[Dict[str, str]]]) -> Optional[Dict[str, str]]:
        """Parse a manifest once; None when absent or malformed."""
        if filename not in self._parsed:
            content = self.find(filename)
            result = None
            if content is not None:
                result = parser(content)
                if result is None:
                    logger.debug("Ignoring malformed %s", filename)
            self._parsed[filename] = result
        return self._parsed[filename]


class StackAnalyzer:
    """Classifies a project's technology stack from its files.

    Pure and deterministic: the same files always produce the same
    DetectedStack, and malformed manifests never raise.
    """

    # Ordered: the first match becomes primary, later stack-level matches are secondary
    JS_FRAMEWORKS: List[Tuple[str, StackType, str]] = [
        ("next", StackType.NEXTJS, "Next.js"),
        ("react", StackType.REACT, "React"),
        ("vue", StackType.VUE, "Vue.js"),
        ("@angular/core", StackType.ANGULAR, "Angular"),
        ("svelte", StackType.SVELTE, "Svelte"),
        ("@nestjs/core", StackType.NESTJS, "NestJS"),
        ("express", StackType.EXPRESS, "Express.js"),
    ]
    JS_LIBRARIES: List[Tuple[str, str]] = [
        ("tailwindcss", "Tailwind CSS"),
        ("prisma", "Prisma"),
        ("@prisma/client", "Prisma"),
        ("mongoose", "MongoDB/Mongoose"),
        ("typeorm", "TypeORM"),
        ("sequelize", "Sequelize"),
        ("@reduxjs/toolkit", "Redux"),
        ("redux", "Redux"),
        ("graphql", "GraphQL"),
        ("socket.io", "Socket.IO"),
    ]
    JS_TEST_TOOLS = ("jest", "vitest", "mocha", "cypress", "@playwright/test")

    PYTHON_MANIFESTS = ("requirements.txt", "pyproject.toml", "Pipfile", "setup.py", "manage.py")
    PYTHON_FRAMEWORKS: List[Tuple[str, StackType, str]] = [
        ("django", StackType.DJANGO, "Django"),
        ("flask", StackType.FLASK, "Flask"),
        ("fastapi", StackType.FASTAPI, "FastAPI"),
    ]
    PYTHON_LIBRARIES: List[Tuple[str, str]] = [
        ("djangorestframework", "Django REST Framework"),
        ("sqlalchemy", "SQLAlchemy"),
        ("celery", "Celery"),
        ("pydantic", "Pydantic"),
        ("pandas", "pandas"),
    ]
    PYTHON_TEST_TOOLS = ("pytest",)

    GO_FRAMEWORKS: List[Tuple[str, str]] = [
        ("github.com/gin-gonic/gin", "Gin"),
        ("github.com/labstack/echo", "Echo"),
        ("github.com/gofiber/fiber", "Fiber"),
        ("github.com/gorilla/mux", "Gorilla Mux"),
        ("github.com/go-chi/chi", "Chi"),
    ]
    RUST_FRAMEWORKS: List[Tuple[str, str]] = [
        ("actix-web", "Actix Web"),
        ("axum", "Axum"),
        ("rocket", "Rocket"),
        ("warp", "Warp"),
        ("tokio", "Tokio"),
    ]

    DOCKER_FILES = ("Dockerfile", "docker-compose.yml", "docker-compose.yaml", "compose.yml", "compose.yaml")
    CI_MARKERS = (".github/workflows", ".gitlab-ci.yml", ".circleci/", "Jenkinsfile", ".travis.yml", "azure-pipelines.yml")
    ENV_TEMPLATES = (".env.example", ".env.sample", ".env.template")

    def analyze(self, files: Sequence[FileInput]) -> DetectedStack:
        """Classify the given files.

        Args:
            files: (name, content) pairs as ProjectFile models or mappings

        Returns:
            DetectedStack; ``primary`` is ``unknown`` when no manifest matches
        """
        index = _FileIndex(files)

        fields: Dict[str, Any] = {
            "has_docker": self._has_docker(index),
            "has_ci": self._has_ci(index),
            "has_env_file": any(index.has(name) for name in self.ENV_TEMPLATES),
        }

        for detector in (self._detect_javascript, self._detect_python, self._detect_go, self._detect_rust):
            detected = detector(index)
            if detected is not None:
                fields.update(detected)
                break

        fields["domain_hints"] = extract_domain_hints(index.paths, self._all_dependency_names(index))
        return DetectedStack(**fields)

    # ------------------------------------------------------------------
    # Flags

    def _has_docker(self, index: _FileIndex) -> bool:
        return index.any_path(
            lambda path: path.rsplit("/", 1)[-1].startswith("Dockerfile")
            or path.rsplit("/", 1)[-1] in self.DOCKER_FILES
        )

    def _has_ci(self, index: _FileIndex) -> bool:
        return index.any_path(lambda path: any(marker in path for marker in self.CI_MARKERS))

    # ------------------------------------------------------------------
    # Ecosystem detectors

    def _detect_javascript(self, index: _FileIndex) -> Optional[Dict[str, Any]]:
        if not index.has("package.json"):
            return None

        deps = index.parsed("package.json", parse_package_json) or {}

        if index.has("pnpm-lock.yaml"):
            package_manager = PackageManager.PNPM
        elif index.has("yarn.lock"):
            package_manager = PackageManager.YARN
        else:
            package_manager = PackageManager.NPM

        is_typescript = "typescript" in deps or index.has("tsconfig.json")
        primary, secondary, frameworks = self._match_frameworks(deps, self.JS_FRAMEWORKS)
        frameworks.extend(self._match_libraries(deps, self.JS_LIBRARIES))

        return {
            "primary": primary,
            "secondary": secondary,
            "language": "TypeScript" if is_typescript else "JavaScript",
            "package_manager": package_manager,
            "has_testing": any(tool in deps for tool in self.JS_TEST_TOOLS),
            "frameworks": frameworks,
            "dependencies": deps,
        }

    def _detect_python(self, index: _FileIndex) -> Optional[Dict[str, Any]]:
        if not any(index.has(name) for name in self.PYTHON_MANIFESTS):
            return None

        deps = self._python_dependencies(index)
        primary, secondary, frameworks = self._match_frameworks(deps, self.PYTHON_FRAMEWORKS)
        if primary == StackType.UNKNOWN and index.has("manage.py"):
            primary = StackType.DJANGO
            frameworks.insert(0, "Django")
        frameworks.extend(self._match_libraries(deps, self.PYTHON_LIBRARIES))

        return {
            "primary": primary,
            "secondary": secondary,
            "language": "Python",
            "package_manager": PackageManager.POETRY if index.has("poetry.lock") else PackageManager.PIP,
            "has_testing": any(tool in deps for tool in self.PYTHON_TEST_TOOLS),
            "frameworks": frameworks,
            "dependencies": deps,
        }

    def _detect_go(self, index: _FileIndex) -> Optional[Dict[str, Any]]:
        if not index.has("go.mod"):
            return None

        deps = index.parsed("go.mod", parse_go_mod) or {}
        frameworks = [
            label for module, label in self.GO_FRAMEWORKS
            if any(dep == module or dep.startswith(module + "/") for dep in deps)
        ]
        return {
            "primary": StackType.GO,
            "language": "Go",
            "package_manager": PackageManager.GO,
            "has_testing": index.any_path(lambda path: path.endswith("_test.go")),
            "frameworks": frameworks,
            "dependencies": deps,
        }

    def _detect_rust(self, index: _FileIndex) -> Optional[Dict[str, Any]]:
        if not index.has("Cargo.toml"):
            return None

        deps = index.parsed("Cargo.toml", parse_cargo_toml) or {}
        return {
            "primary": StackType.RUST,
            "language": "Rust",
            "package_manager": PackageManager.CARGO,
            "has_testing": index.any_path(lambda path: path.startswith("tests/") or "/tests/" in path),
            "frameworks": self._match_libraries(deps, self.RUST_FRAMEWORKS),
            "dependencies": deps,
        }

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _python_dependencies(index: _FileIndex) -> Dict[str, str]:
        deps: Dict[str, str] = {}
        for filename, parser in (
            ("requirements.txt", parse_requirements_txt),
            ("pyproject.toml", parse_pyproject),
            ("Pipfile", parse_pipfile),
        ):
            parsed = index.parsed(filename, parser)
            if parsed:
                for name, version in parsed.items():
                    deps.setdefault(name, version)
        return deps

    @staticmethod
    def _match_frameworks(
        deps: Mapping[str, str],
        table: Sequence[Tuple[str, StackType, str]],
    ) -> Tuple[StackType, List[StackType], List[str]]:
        primary = StackType.UNKNOWN
        secondary: List[StackType] = []
        frameworks: List[str] = []
        names = {normalize_python_name(name) for name in deps} | set(deps)
        for dependency, stack_type, label in table:
            if dependency not in names:
                continue
            if primary == StackType.UNKNOWN:
                primary = stack_type
            else:
                secondary.append(stack_type)
            frameworks.append(label)
        return primary, secondary, frameworks

    @staticmethod
    def _match_libraries(deps: Mapping[str, str], table: Sequence[Tuple[str, str]]) -> List[str]:
        labels = [label for dependency, label in table if dependency in deps]
        return list(dict.fromkeys(labels))

    @staticmethod
    def _all_dependency_names(index: _FileIndex) -> List[str]:
        names: List[str] = []
        for filename, parser in (
            ("package.json", parse_package_json),
            ("requirements.txt", parse_requirements_txt),
            ("pyproject.toml", parse_pyproject),
            ("Pipfile", parse_pipfile),
            ("Cargo.toml", parse_cargo_toml),
        ):
            names.extend(index.parsed(filename, parser) or {})
        return names


def analyze_stack(files: Sequence[FileInput]) -> DetectedStack:
    """Convenience function to classify files with a default analyzer.

    Args:
        files: Project files as ProjectFile models or ``{name, content}`` mappings

    Returns:
        DetectedStack
    """
    return StackAnalyzer().analyze(files)
