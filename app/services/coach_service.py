"""
Veta Coach: chat para convertir un problema validado en una oferta high-ticket
y generador estructurado de ofertas (OfferBundle)
"""

import json
import logging
from typing import Dict, Iterator, List, Optional

from pydantic import ValidationError

from domain.prompts import COACH_PROMPT, OFFERS_PROMPT
from domain.schemas import CoachMessage, OfferBundle, SelectedProblem, UserContext
from infrastructure.errors import LLMError
from infrastructure.llm_client import ILLMClient

SSE_DONE = "data: [DONE]\n\n"


def sse_line(payload: Dict) -> str:
    """Formatea un evento Server-Sent Events con payload JSON"""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


class CoachService:
    """Coach conversacional y generador de ofertas"""

    CHAT_TEMPERATURE = 0.7

    def __init__(self, llm_client: ILLMClient, model: Optional[str] = None):
        self.llm = llm_client
        self.model = model
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def build_problem_context(problem: SelectedProblem, user_context: Optional[UserContext] = None) -> str:
        """Contexto del problema y del usuario que se agrega al prompt del coach"""
        user_context = user_context or UserContext()
        lines = [
            "CONTEXTO DEL PROBLEMA SELECCIONADO:",
            f"Título: {problem.problem_title}",
            f"Dolor principal: {problem.core_pain}",
            f"Quién lo tiene (Persona): {problem.who_has_it}",
            f"Evidencia Económica: {problem.financial_impact}",
            f"Pruebas/Citas: {problem.evidence_summary}",
            f"Alcance de mercado: {problem.market_scope.value}",
            "",
            "CONTEXTO DEL USUARIO:",
            f"Idioma: {user_context.language}",
        ]
        if user_context.country:
            lines.append(f"País: {user_context.country}")
        if user_context.skills:
            lines.append(f"Habilidades: {user_context.skills}")
        if user_context.access:
            lines.append(f"Acceso a mercado: {user_context.access}")
        return "\n".join(lines)

    def stream_chat(
        self,
        messages: List[CoachMessage],
        selected_problem: SelectedProblem,
        user_context: Optional[UserContext] = None
    ) -> Iterator[str]:
        """
        Streamea la respuesta del coach como líneas SSE

        Cada fragmento sale como `data: {"content": ...}` y el stream termina
        con `data: [DONE]`. Si el modelo falla a mitad de camino se envía un
        evento de error y el stream se corta sin [DONE].
        """
        system_prompt = f"{COACH_PROMPT}\n\n{self.build_problem_context(selected_problem, user_context)}"
        conversation = [{"role": "system", "content": system_prompt}]
        conversation.extend({"role": m.role, "content": m.content} for m in messages)

        try:
            for content in self.llm.stream_chat(
                conversation, model=self.model, temperature=self.CHAT_TEMPERATURE
            ):
                yield sse_line({"content": content})
        except LLMError as e:
            self.logger.error(f"Coach stream error: {e}")
            yield sse_line({"error": str(e)})
            return

        yield SSE_DONE

    def generate_offers(
        self,
        selected_problem: SelectedProblem,
        user_context: Optional[UserContext] = None
    ) -> OfferBundle:
        """
        Genera entre 3 y 5 ofertas high-ticket para el problema

        Raises:
            LLMError: si el modelo falla o su salida no cumple el esquema
        """
        context = "\n".join([
            "PROBLEM CONTEXT:",
            f"Title: {selected_problem.problem_title}",
            f"Core Pain: {selected_problem.core_pain}",
            f"Who has it: {selected_problem.who_has_it}",
            f"Financial Impact: {selected_problem.financial_impact}",
            f"Market Scope: {selected_problem.market_scope.value}",
            "",
            "USER CONTEXT:",
            f"Language inputs: {(user_context or UserContext()).model_dump_json(exclude_none=True)}",
        ])

        data = self.llm.complete_json(
            OFFERS_PROMPT,
            f"Generate an OfferBundle for this problem:\n\n{context}",
            model=self.model,
            temperature=self.CHAT_TEMPERATURE
        )

        try:
            bundle = OfferBundle.model_validate(data)
        except ValidationError as e:
            self.logger.error(f"Offer bundle inválido: {e}")
            raise LLMError("Failed to parse offer bundle") from e

        self.logger.info(f"Generated {len(bundle.offers)} offers for '{selected_problem.problem_title}'")
        return bundle
