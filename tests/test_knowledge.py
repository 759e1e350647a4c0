"""tests/test_knowledge.py

Lookups over the bundled knowledge base fixture.
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from core.knowledge import FALLBACK_SLICE, StaticKnowledgeBase, load_knowledge_base


class TestFindSolutions:
    def test_topic_matches_by_substring(self, knowledge: StaticKnowledgeBase) -> None:
        ids = [sol.id for sol in knowledge.find_solutions("customer service")]
        assert ids == ["ID-010", "ID-020"]

    def test_match_is_case_insensitive(self, knowledge: StaticKnowledgeBase) -> None:
        ids = [sol.id for sol in knowledge.find_solutions("PROCESS AUTOMATION")]
        assert "ID-030" in ids

    def test_match_searches_content(self, knowledge: StaticKnowledgeBase) -> None:
        ids = [sol.id for sol in knowledge.find_solutions("invoice processing")]
        assert ids == ["ID-030"]

    def test_empty_topic_returns_everything(self, knowledge: StaticKnowledgeBase) -> None:
        assert len(knowledge.find_solutions(None)) == len(knowledge.catalog.solutions)
        assert len(knowledge.find_solutions("")) == len(knowledge.catalog.solutions)

    def test_no_match_falls_back_to_first_records(self, knowledge: StaticKnowledgeBase) -> None:
        results = knowledge.find_solutions("underwater basket weaving")
        assert len(results) == FALLBACK_SLICE
        assert [sol.id for sol in results] == ["ID-010", "ID-020"]

    def test_citation_format(self, knowledge: StaticKnowledgeBase) -> None:
        first = knowledge.find_solutions("customer service")[0]
        assert first.citation() == "[Conversational AI Solutions](ID-010)"


class TestImplementationPaths:
    def test_solution_type_match(self, knowledge: StaticKnowledgeBase) -> None:
        path = knowledge.find_implementation_path("automation")
        assert path.solution_type == "process automation"

    def test_unknown_type_falls_back_to_first_path(self, knowledge: StaticKnowledgeBase) -> None:
        path = knowledge.find_implementation_path("quantum teleportation")
        assert path.solution_type == "conversational AI"

    def test_missing_type_returns_first_path(self, knowledge: StaticKnowledgeBase) -> None:
        assert knowledge.find_implementation_path(None).timeline == "8-12 weeks"


def test_requirements_profile(knowledge: StaticKnowledgeBase) -> None:
    profile = knowledge.get_requirements_profile()
    assert "Healthcare" in profile.industries_served
    assert set(profile.implementation_approach) == {"phase1", "phase2", "phase3", "phase4"}


def test_fixture_without_solutions_is_rejected(tmp_path) -> None:
    path = tmp_path / "empty.json"
    path.write_text(
        json.dumps(
            {
                "solutions": [],
                "business_requirements": {},
                "implementation_paths": [{"solution_type": "x", "timeline": "1 week"}],
            }
        ),
        encoding="utf-8",
    )
    with pytest.raises(ValidationError):
        load_knowledge_base(path)
