"""
Modelos de dominio para la aplicación
Siguiendo principios de Domain-Driven Design (DDD)
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Any
from bson import ObjectId

from .enums import (
    StreamEventType, StepStatus, PlanType, SubscriptionStatus,
    PaymentStatus, ProductType
)
from utils.helpers import generate_id, to_int, clamp, truncate


# ============================================================================
# INVESTIGACIÓN (fuentes y señales)
# ============================================================================

@dataclass
class SearchResult:
    """Una discusión encontrada en la web"""
    url: str
    title: str
    content: str = ""
    snippet: str = ""

    def to_source_block(self, max_chars: int) -> str:
        """Bloque de texto que se le pasa al analista"""
        return (
            f"Source: {self.url}\n"
            f"Title: {self.title}\n"
            f"Content: {truncate(self.content, max_chars)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "title": self.title,
                "content": self.content, "snippet": self.snippet}


@dataclass
class RedditPost:
    """Post de Reddit (endpoint público .json)"""
    id: str
    title: str
    url: str
    selftext: str = ""
    subreddit: str = ""
    score: int = 0
    num_comments: int = 0
    created_utc: Optional[float] = None

    @property
    def text(self) -> str:
        """Título + cuerpo del post"""
        if self.selftext:
            return f"{self.title}\n\n{self.selftext}"
        return self.title

    @classmethod
    def from_listing_child(cls, child: Dict[str, Any]) -> "RedditPost":
        """Crea el post desde un hijo del listing de /search.json"""
        data = child.get("data", {})
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title", ""),
            url=f"https://www.reddit.com{data.get('permalink', '')}",
            selftext=data.get("selftext") or "",
            subreddit=data.get("subreddit", ""),
            score=data.get("score", 0) or 0,
            num_comments=data.get("num_comments", 0) or 0,
            created_utc=data.get("created_utc"),
        )


@dataclass
class RedditComment:
    """Comentario de primer nivel de un post"""
    body: str
    author: str = "[deleted]"
    score: int = 0

    def to_line(self) -> str:
        return f"[Comment by {self.author}]: {self.body}"


@dataclass
class Signal:
    """Queja, frustración o workaround extraído de una discusión"""
    quote: str
    context: str = ""
    source_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"quote": self.quote, "context": self.context, "source_url": self.source_url}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Signal"]:
        """Crea una señal desde la salida del LLM (None si no tiene cita)"""
        if not isinstance(data, dict):
            return None
        quote = str(data.get("quote") or "").strip()
        if not quote:
            return None
        return cls(
            quote=quote,
            context=str(data.get("context") or ""),
            source_url=str(data.get("source_url") or ""),
        )


# ============================================================================
# PROBLEMAS (resultado del análisis)
# ============================================================================

def _score(value: Any, default: int = 5) -> int:
    """Normaliza un score del LLM al rango 1-10"""
    return clamp(to_int(value, default), 1, 10)


@dataclass
class ProblemMetrics:
    """Rúbrica de scoring de un problema (1-10 cada una)"""
    frequency: int = 5
    intensity: int = 5
    solvability: int = 5
    monetizability: int = 5

    def to_dict(self) -> Dict[str, int]:
        return {
            "frequency": self.frequency,
            "intensity": self.intensity,
            "solvability": self.solvability,
            "monetizability": self.monetizability,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ProblemMetrics":
        data = data if isinstance(data, dict) else {}
        return cls(
            frequency=_score(data.get("frequency")),
            intensity=_score(data.get("intensity")),
            solvability=_score(data.get("solvability")),
            monetizability=_score(data.get("monetizability")),
        )


@dataclass
class ProblemSource:
    """Fuente citada como evidencia"""
    url: str
    title: str = ""
    snippet: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "title": self.title, "snippet": self.snippet}

    @classmethod
    def from_value(cls, value: Any) -> Optional["ProblemSource"]:
        """Acepta una URL suelta o un objeto {url, title, snippet}"""
        if isinstance(value, str):
            return cls(url=value) if value.strip() else None
        if isinstance(value, dict) and value.get("url"):
            return cls(
                url=str(value["url"]),
                title=str(value.get("title") or ""),
                snippet=str(value.get("snippet") or ""),
            )
        return None


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def _solution_list(value: Any) -> List[Any]:
    """Soluciones existentes: objetos {name, complaint} o nombres sueltos"""
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    solutions = []
    for item in value:
        if isinstance(item, dict):
            if item.get("name"):
                solutions.append({
                    "name": str(item["name"]),
                    "complaint": str(item.get("complaint") or ""),
                })
        elif item is not None and str(item).strip():
            solutions.append(str(item))
    return solutions


@dataclass
class Problem:
    """Punto de dolor validado y rankeado"""
    id: str
    rank: int
    description: str
    title: str = ""
    type: str = "problem"
    signal_score: int = 5
    metrics: ProblemMetrics = field(default_factory=ProblemMetrics)
    recommendation: str = ""
    sources: List[ProblemSource] = field(default_factory=list)
    quotes: List[str] = field(default_factory=list)
    existing_solutions: List[Any] = field(default_factory=list)
    gaps: List[str] = field(default_factory=list)
    # Campos opcionales que solo algunos prompts devuelven
    persona: str = ""
    urgency_signals: str = ""
    mvp_ideas: List[str] = field(default_factory=list)
    contact_strategy: str = ""
    willingness_to_pay: Optional[Dict[str, Any]] = None
    solution: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Formato de cable (camelCase, como lo consume el frontend)"""
        data = {
            "id": self.id,
            "rank": self.rank,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "signalScore": self.signal_score,
            "metrics": self.metrics.to_dict(),
            "recommendation": self.recommendation,
            "sources": [source.to_dict() for source in self.sources],
            "quotes": list(self.quotes),
            "existingSolutions": list(self.existing_solutions),
            "gaps": list(self.gaps),
        }
        optional = {
            "persona": self.persona,
            "urgencySignals": self.urgency_signals,
            "mvpIdeas": list(self.mvp_ideas),
            "contactStrategy": self.contact_strategy,
            "willingnessToPay": self.willingness_to_pay,
            "solution": self.solution,
        }
        data.update({key: value for key, value in optional.items() if value})
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], position: int = 1) -> "Problem":
        """Crea un problema desde la salida del LLM, tolerando campos faltantes"""
        sources = [ProblemSource.from_value(item) for item in data.get("sources") or []]
        existing = data.get("existingSolutions", data.get("existing_solutions"))
        willingness = data.get("willingnessToPay")
        solution = data.get("solution")
        return cls(
            id=str(data.get("id") or f"problem-{position}"),
            rank=max(1, to_int(data.get("rank"), position)),
            title=str(data.get("title") or ""),
            type=str(data.get("type") or "problem"),
            description=str(data.get("description") or ""),
            signal_score=_score(data.get("signalScore", data.get("signal_score"))),
            metrics=ProblemMetrics.from_dict(data.get("metrics")),
            recommendation=str(data.get("recommendation") or ""),
            sources=[source for source in sources if source is not None],
            quotes=_string_list(data.get("quotes")),
            existing_solutions=_solution_list(existing),
            gaps=_string_list(data.get("gaps")),
            persona=str(data.get("persona") or ""),
            urgency_signals=str(data.get("urgencySignals") or ""),
            mvp_ideas=_string_list(data.get("mvpIdeas")),
            contact_strategy=str(data.get("contactStrategy") or ""),
            willingness_to_pay=willingness if isinstance(willingness, dict) else None,
            solution=solution if isinstance(solution, dict) else None,
        )


@dataclass
class DiscoveryResult:
    """Reporte final del pipeline de descubrimiento"""
    problems: List[Problem] = field(default_factory=list)

    @property
    def problem_count(self) -> int:
        return len(self.problems)

    def limited(self, max_problems: Optional[int]) -> "DiscoveryResult":
        """Copia del resultado con a lo sumo max_problems (None = sin límite)"""
        if max_problems is None:
            return DiscoveryResult(problems=list(self.problems))
        return DiscoveryResult(problems=self.problems[:max(0, max_problems)])

    def to_dict(self) -> Dict[str, Any]:
        return {"problems": [problem.to_dict() for problem in self.problems]}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DiscoveryResult":
        """Parsea {"problems": [...]} y ordena por rank"""
        raw = (data or {}).get("problems") or []
        problems = [
            Problem.from_dict(item, position=index + 1)
            for index, item in enumerate(raw)
            if isinstance(item, dict)
        ]
        problems.sort(key=lambda problem: problem.rank)
        return cls(problems=problems)


@dataclass
class StreamEvent:
    """Línea del stream NDJSON del endpoint de descubrimiento"""
    type: StreamEventType
    step: Optional[str] = None
    status: Optional[StepStatus] = None
    error: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    @classmethod
    def progress(cls, step: str, status: StepStatus = StepStatus.ACTIVE) -> "StreamEvent":
        return cls(type=StreamEventType.PROGRESS, step=step, status=status)

    @classmethod
    def failure(cls, error: str) -> "StreamEvent":
        return cls(type=StreamEventType.ERROR, error=error)

    @classmethod
    def result(cls, result: DiscoveryResult) -> "StreamEvent":
        return cls(type=StreamEventType.RESULT, data=result.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        if self.type == StreamEventType.PROGRESS:
            return {"type": self.type.value, "step": self.step, "status": self.status.value}
        if self.type == StreamEventType.ERROR:
            return {"type": self.type.value, "error": self.error}
        return {"type": self.type.value, "data": self.data}

    def to_line(self) -> str:
        """Serializa el evento como una línea NDJSON"""
        return json.dumps(self.to_dict(), ensure_ascii=False) + "\n"


# ============================================================================
# SUSCRIPCIONES, USO Y PAGOS
# ============================================================================

@dataclass
class SubscriptionModel:
    """Suscripción de un usuario"""
    _id: Optional[ObjectId] = None
    user_id: str = ""
    email: Optional[str] = None
    plan_type: PlanType = PlanType.FREE
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    mercadopago_payment_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    @property
    def effective_plan(self) -> PlanType:
        """Plan que aplica hoy (una suscripción inactiva cae a FREE)"""
        return self.plan_type if self.is_active else PlanType.FREE

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para MongoDB"""
        data = {
            "user_id": self.user_id,
            "email": self.email,
            "plan_type": self.plan_type.value,
            "status": self.status.value,
            "mercadopago_payment_id": self.mercadopago_payment_id,
            "current_period_start": self.current_period_start,
            "current_period_end": self.current_period_end,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self._id is not None:
            data["_id"] = self._id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubscriptionModel":
        """Crea una SubscriptionModel desde un diccionario de MongoDB"""
        try:
            status = SubscriptionStatus(data.get("status", "active"))
        except ValueError:
            status = SubscriptionStatus.EXPIRED
        return cls(
            _id=data.get("_id"),
            user_id=data.get("user_id", ""),
            email=data.get("email"),
            plan_type=PlanType.parse(data.get("plan_type", "free")),
            status=status,
            mercadopago_payment_id=data.get("mercadopago_payment_id"),
            current_period_start=data.get("current_period_start"),
            current_period_end=data.get("current_period_end"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass
class UsageRecord:
    """Contador de escaneos de un usuario en un mes (YYYY-MM)"""
    user_id: str
    month_year: str
    search_count: int = 0
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "month_year": self.month_year,
            "search_count": self.search_count,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageRecord":
        return cls(
            user_id=data.get("user_id", ""),
            month_year=data.get("month_year", ""),
            search_count=data.get("search_count", 0),
            updated_at=data.get("updated_at"),
        )


@dataclass
class PaymentModel:
    """Pago registrado a partir de una notificación de MercadoPago"""
    _id: Optional[ObjectId] = None
    user_id: str = ""
    mercadopago_payment_id: str = ""
    amount: float = 0.0
    currency: str = "USD"
    status: PaymentStatus = PaymentStatus.PENDING
    payment_type: ProductType = ProductType.SUBSCRIPTION
    plan_type: Optional[PlanType] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "user_id": self.user_id,
            "mercadopago_payment_id": self.mercadopago_payment_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status.value,
            "payment_type": self.payment_type.value,
            "plan_type": self.plan_type.value if self.plan_type else None,
            "created_at": self.created_at,
        }
        if self._id is not None:
            data["_id"] = self._id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentModel":
        plan = data.get("plan_type")
        return cls(
            _id=data.get("_id"),
            user_id=data.get("user_id", ""),
            mercadopago_payment_id=str(data.get("mercadopago_payment_id", "")),
            amount=float(data.get("amount", 0.0)),
            currency=data.get("currency", "USD"),
            status=PaymentStatus(data.get("status", "pending")),
            payment_type=ProductType(data.get("payment_type", "subscription")),
            plan_type=PlanType.parse(plan) if plan else None,
            created_at=data.get("created_at"),
        )


# ============================================================================
# REPORTES, HISTORIAL, CASOS DE ÉXITO Y WORKSHOP
# ============================================================================

@dataclass
class SavedReportModel:
    """Reporte guardado por el usuario"""
    _id: Optional[ObjectId] = None
    report_id: Optional[str] = None
    user_id: str = ""
    title: str = ""
    query: str = ""
    problem_count: int = 0
    results: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    def generate_report_id(self) -> str:
        if not self.report_id:
            self.report_id = generate_id("rep")
        return self.report_id

    def to_summary_dict(self) -> Dict[str, Any]:
        """Versión liviana para listados (sin el JSON de resultados)"""
        return {
            "report_id": self.report_id,
            "title": self.title,
            "query": self.query,
            "problem_count": self.problem_count,
            "created_at": self.created_at,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_summary_dict()
        data.update({
            "report_id": self.report_id or self.generate_report_id(),
            "user_id": self.user_id,
            "results": self.results,
        })
        if self._id is not None:
            data["_id"] = self._id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedReportModel":
        return cls(
            _id=data.get("_id"),
            report_id=data.get("report_id"),
            user_id=data.get("user_id", ""),
            title=data.get("title", ""),
            query=data.get("query", ""),
            problem_count=data.get("problem_count", 0),
            results=data.get("results") or {},
            created_at=data.get("created_at"),
        )


@dataclass
class SearchHistoryEntry:
    """Búsqueda realizada por un usuario"""
    user_id: str
    query: str
    result_count: int = 0
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "query": self.query,
            "result_count": self.result_count,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchHistoryEntry":
        return cls(
            user_id=data.get("user_id", ""),
            query=data.get("query", ""),
            result_count=data.get("result_count", 0),
            created_at=data.get("created_at"),
        )


@dataclass
class SuccessStoryModel:
    """Caso de éxito publicado en /casos-exito"""
    _id: Optional[ObjectId] = None
    story_id: Optional[str] = None
    title: str = ""
    summary: str = ""
    steps: List[str] = field(default_factory=list)
    revenue: Optional[str] = None
    article_content: str = ""
    website_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    EDITABLE_FIELDS = ("title", "revenue", "summary", "steps", "website_url", "article_content")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "story_id": self.story_id or generate_id("story"),
            "title": self.title,
            "summary": self.summary,
            "steps": list(self.steps),
            "revenue": self.revenue,
            "article_content": self.article_content,
            "website_url": self.website_url,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        self.story_id = data["story_id"]
        if self._id is not None:
            data["_id"] = self._id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuccessStoryModel":
        return cls(
            _id=data.get("_id"),
            story_id=data.get("story_id"),
            title=data.get("title", ""),
            summary=data.get("summary", ""),
            steps=_string_list(data.get("steps")),
            revenue=data.get("revenue"),
            article_content=data.get("article_content", ""),
            website_url=data.get("website_url"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass
class WorkshopRegistrationModel:
    """Inscripción al workshop en vivo"""
    _id: Optional[ObjectId] = None
    full_name: str = ""
    email: str = ""
    mobile: str = ""
    paid: bool = False
    mercadopago_payment_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "full_name": self.full_name,
            "email": self.email,
            "mobile": self.mobile,
            "paid": self.paid,
            "mercadopago_payment_id": self.mercadopago_payment_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self._id is not None:
            data["_id"] = self._id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkshopRegistrationModel":
        return cls(
            _id=data.get("_id"),
            full_name=data.get("full_name", ""),
            email=data.get("email", ""),
            mobile=data.get("mobile", ""),
            paid=data.get("paid", False),
            mercadopago_payment_id=data.get("mercadopago_payment_id"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
