"""
Code generation collaborator clients.
"""

from .generation import (
    ChatCompletionsGenerationClient,
    CodeGenerator,
    EndpointGenerationClient,
    StaticCodeGenerator,
    build_generator,
    strip_code_fences,
)
from .prompts import CODE_GENERATION_SYSTEM_PROMPT

__all__ = [
    "CODE_GENERATION_SYSTEM_PROMPT",
    "ChatCompletionsGenerationClient",
    "CodeGenerator",
    "EndpointGenerationClient",
    "StaticCodeGenerator",
    "build_generator",
    "strip_code_fences",
]
