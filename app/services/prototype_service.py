"""
Generador de prompts para herramientas no-code de prototipado
(Lovable, Bolt.new y Antigravity)
"""

import logging
from typing import Dict

from domain.prompts import PROTOTYPE_PROMPT
from domain.schemas import ProblemBrief
from infrastructure.llm_client import ILLMClient

TOOLS = ("lovable", "bolt", "antigravity")


class PrototypeService:
    """Prompts copy-paste para armar un prototipo de validación"""

    MAX_TOKENS = 2000
    TEMPERATURE = 0.7

    def __init__(self, llm_client: ILLMClient):
        self.llm = llm_client
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def build_user_prompt(problem: ProblemBrief) -> str:
        existing = ", ".join(
            f"{item.get('name', '')}: {item.get('complaint', '')}"
            for item in problem.existingSolutions
        )
        mvp_ideas = "; ".join(problem.mvpIdeas[:2])

        sections = [
            "Generate 3 prototype prompts for these no-code AI tools: Lovable, Bolt.new, and Antigravity.",
            f"PROBLEM TO SOLVE:\n{problem.description}",
            f"TARGET USER:\n{problem.persona or 'target users'}",
        ]
        if problem.urgencySignals:
            sections.append(f"URGENCY SIGNALS: {problem.urgencySignals}")
        if existing:
            sections.append(f"CURRENT SOLUTIONS THEY HATE: {existing}")
        if mvp_ideas:
            sections.append(f"MVP IDEAS TO CONSIDER: {mvp_ideas}")
        sections.append(
            "Generate one prompt per tool, each tailored to that tool's strengths. "
            "All prompts should create a simple validation prototype for this specific problem."
        )
        return "\n\n".join(sections)

    def generate_prompts(self, problem: ProblemBrief) -> Dict[str, str]:
        """
        Genera un prompt por herramienta

        Raises:
            ValueError: si el problema no tiene descripción
            ExternalServiceError: si falla el LLM
        """
        if not problem.description or not problem.description.strip():
            raise ValueError("Problem description is required")

        data = self.llm.complete_json(
            PROTOTYPE_PROMPT,
            self.build_user_prompt(problem),
            max_tokens=self.MAX_TOKENS,
            temperature=self.TEMPERATURE
        )
        self.logger.info("[generate-prompts] Prompts generated")
        return {tool: str(data.get(tool) or "") for tool in TOOLS}
