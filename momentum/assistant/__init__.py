"""
Momentum Assistant Package
--------------------------

Background dispatch of AI writing prompts. The generator (an LLM service)
is supplied by the caller; nothing here talks to the network.
"""
from .prompt_task import (
    FALLBACK_MESSAGE,
    PromptDispatcher,
    PromptGenerator,
    PromptResult,
    PromptTask,
)

__all__ = [
    "FALLBACK_MESSAGE",
    "PromptDispatcher",
    "PromptGenerator",
    "PromptResult",
    "PromptTask",
]
