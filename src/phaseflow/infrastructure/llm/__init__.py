"""
Generation service adapters.
"""

from phaseflow.infrastructure.llm.mock import MockGenerationService
from phaseflow.infrastructure.llm.openai_service import (
    OpenAIGenerationConfig,
    OpenAIGenerationService,
)

__all__ = [
    "MockGenerationService",
    "OpenAIGenerationConfig",
    "OpenAIGenerationService",
]
