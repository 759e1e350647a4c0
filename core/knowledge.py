"""
Knowledge base — read-only records the supervisor's tools look up.

Architecture:
    KnowledgeProvider    — abstract provider injected into ``ToolExecutor``
    StaticKnowledgeBase  — in-memory provider over a validated fixture catalog
    load_knowledge_base  — JSON fixture loader (cached per path)
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

_DEFAULT_FIXTURE = Path(__file__).parent / "data" / "knowledge_base.json"

# Number of records returned when a topic matches nothing.
FALLBACK_SLICE = 2


class Solution(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable citation id, e.g. ID-010.")
    name: str
    topic: str
    content: str

    def citation(self) -> str:
        return f"[{self.name}]({self.id})"


class RequirementsProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    industries_served: tuple[str, ...] = ()
    common_use_cases: tuple[str, ...] = ()
    implementation_approach: dict[str, str] = Field(default_factory=dict)
    success_metrics: tuple[str, ...] = ()


class ImplementationPath(BaseModel):
    model_config = ConfigDict(frozen=True)

    solution_type: str
    timeline: str
    phases: tuple[str, ...] = ()
    requirements: tuple[str, ...] = ()
    investment_range: str = ""
    roi_timeline: str = ""


class KnowledgeCatalog(BaseModel):
    """Whole fixture, validated once at load time."""

    model_config = ConfigDict(frozen=True)

    solutions: tuple[Solution, ...] = Field(min_length=1)
    business_requirements: RequirementsProfile
    implementation_paths: tuple[ImplementationPath, ...] = Field(min_length=1)


# ═════════════════════════════════════════════════════════════════════════════
# Providers
# ═════════════════════════════════════════════════════════════════════════════


class KnowledgeProvider(ABC):
    """Read-only lookups used by the supervisor tools. Implementations never fail."""

    @abstractmethod
    def find_solutions(self, topic: str | None = None) -> list[Solution]:
        """Solutions matching ``topic``; never empty."""

    @abstractmethod
    def get_requirements_profile(self) -> RequirementsProfile:
        """The business requirements profile."""

    @abstractmethod
    def find_implementation_path(self, solution_type: str | None = None) -> ImplementationPath:
        """Best implementation path for ``solution_type``; never ``None``."""


class StaticKnowledgeBase(KnowledgeProvider):
    def __init__(self, catalog: KnowledgeCatalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> KnowledgeCatalog:
        return self._catalog

    def find_solutions(self, topic: str | None = None) -> list[Solution]:
        solutions = list(self._catalog.solutions)
        if not topic:
            return solutions
        needle = topic.lower()
        matches = [
            sol
            for sol in solutions
            if needle in sol.topic.lower() or needle in sol.content.lower() or needle in sol.name.lower()
        ]
        return matches or solutions[:FALLBACK_SLICE]

    def get_requirements_profile(self) -> RequirementsProfile:
        return self._catalog.business_requirements

    def find_implementation_path(self, solution_type: str | None = None) -> ImplementationPath:
        paths = self._catalog.implementation_paths
        if solution_type:
            needle = solution_type.lower()
            for path in paths:
                if needle in path.solution_type.lower():
                    return path
        return paths[0]


@lru_cache(maxsize=4)
def _load_catalog(path: str) -> KnowledgeCatalog:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    return KnowledgeCatalog.model_validate(raw)


def load_knowledge_base(path: str | Path | None = None) -> StaticKnowledgeBase:
    """Build a provider from a JSON fixture (defaults to the bundled catalog)."""
    return StaticKnowledgeBase(_load_catalog(str(path or _DEFAULT_FIXTURE)))
