"""
Esquemas pydantic para el coach de ofertas
Validan tanto los requests como la salida estructurada del LLM
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .enums import MarketScope


class PriceRange(BaseModel):
    min: float
    max: float

    @model_validator(mode="after")
    def check_range(self) -> "PriceRange":
        if self.min > self.max:
            raise ValueError("price_usd.min no puede ser mayor que price_usd.max")
        return self


class Offer(BaseModel):
    """Oferta high-ticket productizada"""
    title: str
    ideal_customer: str
    painful_problem: str
    promise_outcome: str
    deliverables: List[str]
    timeline_weeks: float
    price_usd: PriceRange
    roi_rationale: str
    differentiation: str
    risk_reversal: str
    discovery_questions: List[str]
    outreach_message: str
    next_step_call_to_action: str


class OfferBundle(BaseModel):
    """Paquete de ofertas generado para un problema"""
    locale: Literal["es"] = "es"
    country: str = ""
    offers: List[Offer]
    recommended_best_offer_index: int = 0
    quick_pitch: str
    positioning_statement: str
    seven_day_validation_plan: List[str]
    safety_notes: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_recommended_index(self) -> "OfferBundle":
        if not self.offers:
            raise ValueError("El bundle debe tener al menos una oferta")
        if not 0 <= self.recommended_best_offer_index < len(self.offers):
            self.recommended_best_offer_index = 0
        return self


class CoachMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class SelectedProblem(BaseModel):
    """Problema validado que el usuario eligió monetizar"""
    id: str = ""
    problem_title: str
    who_has_it: str = ""
    core_pain: str = ""
    financial_impact: str = ""
    evidence_summary: str = ""
    market_scope: MarketScope = MarketScope.REGIONAL_LATAM
    country: Optional[str] = None


class UserContext(BaseModel):
    language: Literal["es"] = "es"
    country: Optional[str] = None
    stage: Optional[Literal["no_ideas", "too_many", "stuck_low_ticket"]] = None
    skills: Optional[str] = None
    access: Optional[str] = None
    marketPreference: Optional[Literal["local", "international", "both"]] = None


class ProblemBrief(BaseModel):
    """Datos del problema para el generador de prompts de prototipos"""
    description: str = ""
    persona: Optional[str] = None
    urgencySignals: Optional[str] = None
    mvpIdeas: List[str] = Field(default_factory=list)
    existingSolutions: List[dict] = Field(default_factory=list)
