"""Minimal documentation section catalog used for eligibility decisions."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from contracts import DetectedStack, StackType

_JS_STACKS = (
    StackType.NEXTJS,
    StackType.REACT,
    StackType.VUE,
    StackType.ANGULAR,
    StackType.SVELTE,
    StackType.EXPRESS,
    StackType.NESTJS,
)
_API_STACKS = (
    StackType.EXPRESS,
    StackType.NESTJS,
    StackType.FASTAPI,
    StackType.DJANGO,
    StackType.FLASK,
    StackType.GO,
)


@dataclass(frozen=True)
class SectionSpec:
    """A README section: identity, ordering and the stacks it applies to."""
    id: str
    name: str
    order: int
    explanation: str
    stack_specific: Tuple[StackType, ...] = ()

    def applies_to(self, stack: DetectedStack) -> bool:
        return not self.stack_specific or stack.primary in self.stack_specific


SECTIONS: Tuple[SectionSpec, ...] = (
    SectionSpec(
        "header", "Project Header", 1,
        "The header is the first thing people see: it says what the project does at a glance.",
    ),
    SectionSpec(
        "features", "Features", 2,
        "Features let readers decide quickly whether the project solves their problem.",
    ),
    SectionSpec(
        "tech-stack", "Tech Stack", 3,
        "Listing the stack helps contributors judge whether they can work on the project.",
    ),
    SectionSpec(
        "installation", "Installation", 4,
        "Clear setup steps lower the barrier to running and contributing to the project.",
    ),
    SectionSpec(
        "environment", "Environment Variables", 5,
        "Documented configuration prevents the most common local setup failures.",
    ),
    SectionSpec(
        "scripts", "Available Scripts", 6,
        "Explaining scripts saves contributors from reading the manifest to find commands.",
        _JS_STACKS,
    ),
    SectionSpec(
        "api-docs", "API Documentation", 7,
        "Documented endpoints make an API usable without reading its source.",
        _API_STACKS,
    ),
    SectionSpec(
        "deployment", "Deployment", 8,
        "Deployment notes show how to take the project from a laptop to production.",
    ),
    SectionSpec(
        "docker", "Docker Setup", 9,
        "Container instructions give every machine the same environment.",
    ),
    SectionSpec(
        "testing", "Testing", 10,
        "Test instructions prove the code works and show how to keep it that way.",
    ),
    SectionSpec(
        "contributing", "Contributing", 11,
        "Contribution guidelines make the project welcoming to new contributors.",
    ),
    SectionSpec(
        "license", "License", 12,
        "A license states how others may use the code; without one it is all rights reserved.",
    ),
)

_BY_ID: Dict[str, SectionSpec] = {section.id: section for section in SECTIONS}


def get_section(section_id: str) -> Optional[SectionSpec]:
    return _BY_ID.get(section_id)


def sections_for_stack(stack: DetectedStack) -> List[str]:
    """Section ids the stack qualifies for, in document order."""
    return [s.id for s in sorted(SECTIONS, key=lambda s: s.order) if s.applies_to(stack)]
