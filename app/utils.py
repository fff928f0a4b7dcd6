"""
Helpers for talking to an OpenAI-compatible chat completion API.
"""
import logging
from typing import Optional, Tuple

import openai

from config import settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """The completion service is not configured or did not answer."""


def setup_llm_client(model_name: Optional[str] = None) -> Tuple[openai.OpenAI, str, str]:
    """
    Build a client for the configured provider.
    Returns (client, model_name, api_provider).
    """
    api_key = settings.OPENAI_API_KEY
    if not api_key:
        raise LLMError("OPENAI_API_KEY is not set")
    if settings.OPENAI_BASE_URL:
        client = openai.OpenAI(api_key=api_key, base_url=settings.OPENAI_BASE_URL)
        api_provider = settings.OPENAI_BASE_URL
    else:
        client = openai.OpenAI(api_key=api_key)
        api_provider = "openai"
    return client, model_name or settings.AI_MODEL, api_provider


def get_completion(prompt, client, model_name, api_provider, temperature=0.7, system_prompt=None):
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    try:
        response = client.chat.completions.create(
            model=model_name,
            messages=messages,
            temperature=temperature,
        )
    except openai.OpenAIError as e:
        raise LLMError(f"{api_provider} request failed: {e}") from e
    if not response.choices or response.choices[0].message.content is None:
        raise LLMError(f"{api_provider} returned no choices")
    return response.choices[0].message.content.strip()
