"""
LLM Module
Provider-neutral generation backend layer
"""
from .base import BaseLLM, LLMResponse, Message, MessageRole
from .openai_llm import OpenAILLM
from .gemini_llm import GeminiLLM
from .factory import get_llm

__all__ = [
    "BaseLLM",
    "LLMResponse",
    "Message",
    "MessageRole",
    "OpenAILLM",
    "GeminiLLM",
    "get_llm",
]
