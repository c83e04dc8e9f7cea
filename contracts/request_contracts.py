"""Request/response contracts for the Analyze and GenerateSection operations."""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from .stack_contracts import DetectedStack, ProjectFile
from .quota_contracts import UsageInfo


class AnalyzeRequest(BaseModel):
    """Files of the project to analyze."""
    files: List[ProjectFile] = Field(..., description="Project file listing with selected contents")


class AnalysisResult(BaseModel):
    """Stack classification plus the sections the project qualifies for."""
    stack: DetectedStack
    eligible_sections: List[str]
    file_names: List[str]


class RepoData(BaseModel):
    """Optional structural data used to enrich the generation context."""
    structure: List[str] = Field(default_factory=list, description="File paths of the project")
    package_json: Optional[Dict[str, Any]] = None
    existing_readme: Optional[str] = None
    env_example: Optional[str] = None
    has_docker: bool = False
    has_tests: bool = False
    has_ci: bool = False


class GenerateRequest(BaseModel):
    """Request to generate one documentation section."""
    section_id: str = Field(..., min_length=1, description="Section identifier")
    project_name: str = Field(..., min_length=1, description="Project identity")
    stack: DetectedStack
    repo_url: Optional[str] = None
    repo_data: Optional[RepoData] = None
    preferred_backend: Optional[str] = None


class SectionResult(BaseModel):
    """A generated (or cached) section with the caller's usage after metering."""
    section_id: str
    content: str
    explanation: str
    provider: str
    cached: bool = False
    usage: UsageInfo


class ClearCacheRequest(BaseModel):
    """Request to drop every cached section of one project."""
    project_name: str = Field(..., min_length=1, description="Project identity")
