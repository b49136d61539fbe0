"""LLM provider abstraction. LLM is reasoning only, never orchestration."""

from radar.llm.openai_provider import OpenAIProvider
from radar.llm.provider import LLMProvider
from radar.llm.router import ModelRole, get_llm_provider, resolve_llm_provider

__all__ = ["LLMProvider", "ModelRole", "OpenAIProvider", "get_llm_provider", "resolve_llm_provider"]
