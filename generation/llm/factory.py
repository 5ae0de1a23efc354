"""
LLM Factory
Build the configured generation backend
"""
from typing import Optional
import logging

from config import LLMSettings, get_llm_settings
from utils.exceptions import ConfigurationError

from .base import BaseLLM
from .openai_llm import OpenAILLM
from .gemini_llm import GeminiLLM


logger = logging.getLogger(__name__)


DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "gemini": "gemini-2.0-flash",
}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    settings: Optional[LLMSettings] = None,
    **kwargs,
) -> BaseLLM:
    """
    Get an LLM instance

    Args:
        provider: openai or gemini (settings value when omitted)
        model: model name (provider default when omitted)
        settings: LLM settings (process settings when omitted)
        **kwargs: extra constructor arguments

    Returns:
        BaseLLM

    Raises:
        ConfigurationError: unknown provider or missing API key
    """
    settings = settings or get_llm_settings()

    provider = (provider or settings.provider).strip().lower()
    if provider not in DEFAULT_MODELS:
        raise ConfigurationError(f"Unsupported LLM provider: {provider}")

    model = model or settings.model_name or DEFAULT_MODELS[provider]

    api_key = kwargs.pop("api_key", None) or settings.api_key_for(provider)
    if not api_key:
        raise ConfigurationError(f"LLM_{provider.upper()}_API_KEY is not set", {"provider": provider})

    kwargs.setdefault("temperature", settings.generation_temperature)
    kwargs.setdefault("max_tokens", settings.max_output_tokens)
    kwargs.setdefault("timeout", settings.timeout)

    logger.debug(f"Using {provider} model {model}")

    if provider == "openai":
        return OpenAILLM(
            model=model,
            api_key=api_key,
            base_url=kwargs.pop("base_url", None),
            **kwargs,
        )
    return GeminiLLM(
        model=model,
        api_key=api_key,
        **kwargs,
    )
