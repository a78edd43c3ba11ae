"""
Cliente para la API de Perplexity (investigación web con búsqueda integrada)
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Any

import requests
from tenacity import retry, retry_if_exception_type, wait_exponential_jitter, stop_after_attempt

from config.settings import PerplexityConfig, mask_secret
from domain.prompts import PERPLEXITY_RESEARCH_PROMPT
from infrastructure.errors import PerplexityError
from utils.helpers import extract_json, safe_get_nested

logger = logging.getLogger(__name__)


class IResearchClient(ABC):
    """Interface para motores de investigación que devuelven problemas ya rankeados"""

    @abstractmethod
    def search_pain_points(self, topic: str) -> Dict[str, Any]:
        """Devuelve {"problems": [...]} para un tema"""
        pass


class PerplexityClient(IResearchClient):
    """Implementación concreta sobre /chat/completions de Perplexity"""

    def __init__(self, config: PerplexityConfig):
        self.config = config
        self.base_url = config.base_url.rstrip("/")

        if not config.api_key:
            raise ValueError("PERPLEXITY_API_KEY is not set in environment variables")

    def _get_headers(self) -> Dict[str, str]:
        """Headers comunes para requests"""
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    @retry(
        retry=retry_if_exception_type(requests.ConnectionError),
        wait=wait_exponential_jitter(initial=1, max=10),
        stop=stop_after_attempt(3),
        reraise=True
    )
    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        return requests.post(
            f"{self.base_url}/chat/completions",
            headers=self._get_headers(),
            json=payload,
            timeout=self.config.timeout_seconds
        )

    def search_pain_points(self, topic: str) -> Dict[str, Any]:
        """
        Busca puntos de dolor sobre un tema

        Args:
            topic: Nicho o tema escrito por el usuario

        Returns:
            Diccionario {"problems": [...]} tal como lo devuelve el modelo

        Raises:
            PerplexityError: error HTTP, timeout o JSON inválido
        """
        logger.info(f"[Perplexity] Starting search for: {topic} (key: {mask_secret(self.config.api_key)})")

        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": PERPLEXITY_RESEARCH_PROMPT},
                {"role": "user", "content": f"Tema: {topic}"},
            ],
        }

        try:
            response = self._post(payload)
        except requests.Timeout as e:
            logger.error(f"[Perplexity] Request timed out after {self.config.timeout_seconds} seconds")
            raise PerplexityError(
                f"Perplexity API request timed out after {self.config.timeout_seconds} seconds"
            ) from e
        except requests.RequestException as e:
            logger.error(f"[Perplexity] Error de conexión: {e}")
            raise PerplexityError(f"Error de conexión con Perplexity: {e}") from e

        logger.info(f"[Perplexity] Response status: {response.status_code}")

        if not response.ok:
            logger.error(f"[Perplexity] API error response: {response.text[:500]}")
            raise PerplexityError(
                f"Perplexity API error ({response.status_code}): {response.text}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PerplexityError("Perplexity returned a non JSON body") from e

        content = safe_get_nested(data, "choices.0.message.content")
        try:
            parsed = extract_json(content)
        except ValueError as e:
            logger.error(f"[Perplexity] Failed to parse JSON: {str(content)[:200]}")
            raise PerplexityError("Perplexity returned invalid JSON format") from e

        logger.info(f"[Perplexity] Successfully parsed JSON with {len(parsed.get('problems') or [])} problems")
        return parsed


class MockResearchClient(IResearchClient):
    """Cliente mock para testing"""

    def __init__(self, result: Dict[str, Any] = None, error: Exception = None, delay_seconds: float = 0):
        self.result = result if result is not None else {"problems": []}
        self.error = error
        self.delay_seconds = delay_seconds
        self.topics = []

    def search_pain_points(self, topic: str) -> Dict[str, Any]:
        self.topics.append(topic)
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        if self.error:
            raise self.error
        return self.result
