"""Analyzer module for technology-stack classification."""

from .stack_analyzer import StackAnalyzer, analyze_stack
from .domain_hints import extract_domain_hints
from .sections import SECTIONS, SectionSpec, get_section, sections_for_stack

__all__ = [
    "StackAnalyzer",
    "analyze_stack",
    "extract_domain_hints",
    "SECTIONS",
    "SectionSpec",
    "get_section",
    "sections_for_stack",
]
