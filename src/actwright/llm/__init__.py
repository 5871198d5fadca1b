"""
LLM Providers - Concrete implementations of the LLM interface.

Available providers:
- OpenAIProvider: HTTP REST-based, any OpenAI-compatible endpoint
"""

from actwright.llm.openai_provider import OpenAIProvider

__all__ = [
    "OpenAIProvider",
]
