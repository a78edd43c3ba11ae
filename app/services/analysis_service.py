"""
Pasos agénticos del pipeline manual: planificar, extraer señales y sintetizar
Cada paso nunca lanza excepciones, devuelve un valor de respaldo
"""

import json
import logging
from typing import List, Union

from domain.models import DiscoveryResult, Signal
from domain.prompts import PLANNER_PROMPT, EXTRACTOR_PROMPT, ANALYST_PROMPT
from infrastructure.errors import ExternalServiceError
from infrastructure.llm_client import ILLMClient


class AnalysisService:
    """Analista de investigación de mercado sobre un cliente LLM"""

    MAX_EXTRACT_CHARS = 15000
    MAX_SIGNALS = 50

    def __init__(self, llm_client: ILLMClient):
        self.llm = llm_client
        self.logger = logging.getLogger(__name__)

    def plan_research(self, topic: str) -> List[str]:
        """
        Genera queries de búsqueda para encontrar quejas sobre un tema

        Returns:
            Lista de queries. Si el modelo no devuelve "queries" se usan
            3 queries por defecto; si la llamada falla, 2 queries mínimas.
        """
        try:
            data = self.llm.complete_json(PLANNER_PROMPT, f"Topic: {topic}")
        except (ExternalServiceError, ValueError) as e:
            self.logger.error(f"Plan Research Error: {e}")
            return [f"{topic} reddit", f"{topic} issues"]

        raw_queries = data.get("queries")
        if not isinstance(raw_queries, list):
            raw_queries = []
        queries = [str(q).strip() for q in raw_queries if q is not None and str(q).strip()]
        if not queries:
            return [f"{topic} reddit complaints", f"{topic} problems", f"{topic} alternatives"]
        return queries

    def extract_signals(self, content: str) -> List[Signal]:
        """Extrae quejas, frustraciones y workarounds de un texto"""
        try:
            data = self.llm.complete_json(
                EXTRACTOR_PROMPT,
                f"Extract signals from: {content[:self.MAX_EXTRACT_CHARS]}"
            )
        except (ExternalServiceError, ValueError) as e:
            self.logger.error(f"Extract Signals Error: {e}")
            return []

        signals = [Signal.from_dict(item) for item in data.get("signals") or []]
        return [signal for signal in signals if signal is not None]

    def synthesize_patterns(self, signals: Union[List[Signal], str]) -> DiscoveryResult:
        """
        Agrupa las señales en patrones de problema con score

        Acepta la lista de señales extraídas o, si la extracción no devolvió
        nada, el corpus de texto crudo. Sin entrada o ante error devuelve un
        reporte vacío.
        """
        if not signals:
            return DiscoveryResult()

        if isinstance(signals, str):
            payload = signals[:self.MAX_EXTRACT_CHARS]
        else:
            payload = json.dumps(
                [signal.to_dict() for signal in signals[:self.MAX_SIGNALS]],
                ensure_ascii=False
            )

        try:
            data = self.llm.complete_json(ANALYST_PROMPT, f"Analyze these signals: {payload}")
        except (ExternalServiceError, ValueError) as e:
            self.logger.error(f"Synthesize Error: {e}")
            return DiscoveryResult()

        return DiscoveryResult.from_dict(data)
