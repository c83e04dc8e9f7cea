"""Stack analysis contracts."""

from enum import Enum
from types import MappingProxyType
from typing import Annotated, Mapping, Tuple

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer

# Read-only after validation, serialized back to a plain dict
FrozenDict = Annotated[
    Mapping[str, str],
    AfterValidator(lambda value: MappingProxyType(dict(value))),
    PlainSerializer(lambda value: dict(value)),
]


class StackType(str, Enum):
    """Primary ecosystem tag of a project."""
    NEXTJS = "nextjs"
    REACT = "react"
    VUE = "vue"
    ANGULAR = "angular"
    SVELTE = "svelte"
    EXPRESS = "express"
    NESTJS = "nestjs"
    DJANGO = "django"
    FLASK = "flask"
    FASTAPI = "fastapi"
    GO = "go"
    RUST = "rust"
    UNKNOWN = "unknown"


class PackageManager(str, Enum):
    """Package manager inferred from manifests and lockfiles."""
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    PIP = "pip"
    POETRY = "poetry"
    GO = "go"
    CARGO = "cargo"
    UNKNOWN = "unknown"


class ProjectFile(BaseModel):
    """One file of the submitted project: its path and (possibly empty) content."""
    name: str = Field(..., min_length=1, description="Path relative to the project root")
    content: str = Field(default="", description="File content; empty when only the name is known")


class DetectedStack(BaseModel):
    """Immutable classification of a project's technology stack."""

    model_config = ConfigDict(frozen=True)

    primary: StackType = Field(default=StackType.UNKNOWN, description="Primary ecosystem tag")
    secondary: Tuple[StackType, ...] = Field(default=(), description="Further stack tags matched")
    language: str = Field(default="unknown", description="Human-readable language name")
    package_manager: PackageManager = Field(default=PackageManager.UNKNOWN)
    has_docker: bool = False
    has_ci: bool = False
    has_testing: bool = False
    has_env_file: bool = False
    frameworks: Tuple[str, ...] = Field(default=(), description="Detected frameworks/libraries, in detection order")
    dependencies: FrozenDict = Field(default_factory=dict, validate_default=True, description="Raw dependency name -> version")
    domain_hints: Tuple[str, ...] = Field(default=(), description="Deduplicated domain tags")
