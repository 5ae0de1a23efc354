"""
Base LLM
Abstract generation backend
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from enum import Enum


class MessageRole(str, Enum):
    """Message role"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """Chat message"""
    role: MessageRole
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)


@dataclass
class LLMResponse:
    """Backend response"""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)  # prompt_tokens, completion_tokens, total_tokens
    finish_reason: Optional[str] = None
    raw_response: Optional[Any] = None


class BaseLLM(ABC):
    """
    Generation backend base class

    Implementations translate provider failures into TransientBackendError
    (retryable) or BackendError (not retryable).
    """

    def __init__(
        self,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 1500,
        timeout: float = 60.0,
        **kwargs,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.extra_config = kwargs

    @property
    @abstractmethod
    def provider(self) -> str:
        """Provider name"""
        pass

    @abstractmethod
    async def acomplete(
        self,
        messages: List[Message],
        **kwargs,
    ) -> LLMResponse:
        """
        Generate a response

        Args:
            messages: conversation
            **kwargs: per-call overrides (temperature, max_tokens)

        Returns:
            LLMResponse
        """
        pass

    async def aclose(self) -> None:
        """Release client resources (no-op by default)"""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model}, provider={self.provider})"
