"""
Cliente para modelos de lenguaje (OpenAI)
Implementa el patrón Repository e Interface Segregation
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, Iterator, List, Optional

from openai import OpenAI, OpenAIError

from config.settings import OpenAIConfig, mask_secret
from infrastructure.errors import LLMError
from utils.helpers import extract_json

logger = logging.getLogger(__name__)


class ILLMClient(ABC):
    """Interface para clientes LLM (Dependency Inversion Principle)"""

    @abstractmethod
    def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Pide una respuesta en modo JSON y la devuelve parseada"""
        pass

    @abstractmethod
    def stream_chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: Optional[float] = None
    ) -> Iterator[str]:
        """Streamea los fragmentos de texto de una conversación"""
        pass


class OpenAILLMClient(ILLMClient):
    """
    Implementación concreta usando el SDK oficial de OpenAI
    El SDK ya reintenta errores de conexión y 429/5xx por su cuenta
    """

    def __init__(self, config: OpenAIConfig, client: Optional[OpenAI] = None):
        self.config = config

        if client is None and not config.api_key:
            raise ValueError("OpenAI API key es requerida")

        self.client = client or OpenAI(
            api_key=config.api_key.strip(),
            timeout=config.timeout_seconds
        )
        logger.info(f"OpenAI client listo (key: {mask_secret(config.api_key)}, model: {config.model})")

    def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            response = self.client.chat.completions.create(
                model=model or self.config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                response_format={"type": "json_object"},
                **kwargs
            )
        except OpenAIError as e:
            raise LLMError(f"Error llamando a OpenAI: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError("No response from OpenAI")

        try:
            return extract_json(content)
        except ValueError as e:
            logger.error(f"JSON inválido de OpenAI: {content[:200]}")
            raise LLMError("Invalid JSON response from OpenAI") from e

    def stream_chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: Optional[float] = None
    ) -> Iterator[str]:
        kwargs: Dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            stream = self.client.chat.completions.create(
                model=model or self.config.coach_model,
                messages=messages,
                stream=True,
                **kwargs
            )
            for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except OpenAIError as e:
            raise LLMError(f"Error en streaming de OpenAI: {e}") from e


class MockLLMClient(ILLMClient):
    """
    Cliente mock para testing
    Devuelve las respuestas encoladas en orden y registra cada llamada
    """

    def __init__(self, responses: Optional[List[Any]] = None, chunks: Optional[List[str]] = None):
        self.responses = list(responses or [])
        self.chunks = list(chunks or [])
        self.calls: List[Dict[str, Any]] = []

    def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        self.calls.append({"system": system_prompt, "user": user_prompt, "model": model})
        if not self.responses:
            raise LLMError("Mock sin respuestas")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def stream_chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: Optional[float] = None
    ) -> Iterator[str]:
        self.calls.append({"messages": messages, "model": model})
        for chunk in self.chunks:
            yield chunk
