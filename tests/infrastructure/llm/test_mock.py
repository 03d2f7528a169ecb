"""Tests for MockGenerationService."""

import asyncio

import pytest

from phaseflow.domain.models import SprintSeed, SprintSpecification
from phaseflow.infrastructure.llm.mock import DEFAULT_CHECKLIST, MockGenerationService


class TestMockGenerationService:
    def test_numbered_documents_by_default(self):
        service = MockGenerationService()

        first = asyncio.run(service.generate("p", "c", {}))
        second = asyncio.run(service.generate("p", "c", {}))

        assert (first, second) == ("Document 1", "Document 2")
        assert service.call_count == 2

    def test_responses_in_sequence(self):
        service = MockGenerationService(responses=["a", "b"])

        assert asyncio.run(service.generate("p", "c", {})) == "a"
        assert asyncio.run(service.generate("p", "c", {})) == "b"
        with pytest.raises(RuntimeError, match="exhausted"):
            asyncio.run(service.generate("p", "c", {}))

    def test_reset_reuses_responses(self):
        service = MockGenerationService(responses=["a"])
        asyncio.run(service.generate("p", "c", {}))

        service.reset()

        assert asyncio.run(service.generate("p", "c", {})) == "a"

    def test_fail_times_then_recovers(self):
        service = MockGenerationService()
        service.fail("summarize", ValueError("boom"), times=2)

        for _ in range(2):
            with pytest.raises(ValueError, match="boom"):
                asyncio.run(service.summarize("x"))
        assert asyncio.run(service.summarize("x")) == "compacted: requirements summary"

    def test_recover_clears_failure(self):
        service = MockGenerationService()
        service.fail("generate")

        service.recover("generate")

        assert asyncio.run(service.generate("p", "c", {})) == "Document 1"

    def test_structured_responses(self):
        service = MockGenerationService(sprint_seeds=(SprintSeed("A", "a"),))

        assert asyncio.run(service.expand_sprints("seed")) == [SprintSeed("A", "a")]
        assert asyncio.run(service.review_checklist("doc")) == list(DEFAULT_CHECKLIST)

    def test_specification_shares_document_sequence(self):
        service = MockGenerationService(deliverables=("Schematic",))

        asyncio.run(service.generate("p", "c", {}))
        spec = asyncio.run(service.specify_sprint("p", "c", {"depth": 90}))

        assert spec == SprintSpecification("Document 2", ("Schematic",))
        assert service.call_count == 2
        assert service.calls_to("specify_sprint")[0]["tuning_settings"] == {"depth": 90}

    def test_compare(self):
        service = MockGenerationService()

        assert asyncio.run(service.compare("x", "x")) == "No differences."
        assert (
            asyncio.run(service.compare("x", "y", "Initial generation", "Manual edit"))
            == "Changed from (Initial generation) to (Manual edit)."
        )

    def test_calls_recorded_and_hook_invoked(self):
        seen: list[str] = []
        service = MockGenerationService(on_call=seen.append)

        asyncio.run(service.summarize("content"))

        assert seen == ["summarize"]
        assert service.calls_to("summarize") == [{"content": "content"}]
