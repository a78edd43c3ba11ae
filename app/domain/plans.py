"""
Configuración de planes de suscripción de Veta
Definiciones centralizadas para poder ajustar precios y límites en un solo lugar

Tipos de plan:
- free: un solo escaneo de por vida (sin reseteo)
- pro: suscripción mensual con 5 escaneos por mes
- advanced: suscripción mensual con 15 escaneos por mes
"""

import calendar
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .enums import PlanType
from .models import DiscoveryResult
from utils.helpers import to_naive_utc, utcnow


@dataclass(frozen=True)
class PlanConfig:
    """Definición de un plan"""
    id: PlanType
    name: Dict[str, str]
    scans_per_period: int
    max_pain_points_per_scan: Optional[int]  # None = ilimitado
    is_recurring: bool
    price_usd: float
    features: Dict[str, List[str]] = field(default_factory=dict)
    badge: Optional[Dict[str, str]] = None

    def to_dict(self, lang: str = "es") -> Dict:
        return {
            "id": self.id.value,
            "name": self.name.get(lang, self.name["en"]),
            "scans_per_period": self.scans_per_period,
            "max_pain_points_per_scan": self.max_pain_points_per_scan,
            "is_recurring": self.is_recurring,
            "price_usd": self.price_usd,
            "features": self.features.get(lang, self.features.get("en", [])),
            "badge": self.badge.get(lang) if self.badge else None,
        }


PLANS: Dict[PlanType, PlanConfig] = {
    PlanType.FREE: PlanConfig(
        id=PlanType.FREE,
        name={"en": "Free", "es": "Gratuito"},
        scans_per_period=1,  # 1 escaneo TOTAL (de por vida)
        max_pain_points_per_scan=3,
        is_recurring=False,
        price_usd=0,
        features={
            "en": [
                "1 scan total (one-time)",
                "Up to 3 pain points per scan",
                "Full AI analysis",
                "Direct source links",
            ],
            "es": [
                "1 escaneo total (una vez)",
                "Hasta 3 problemas por escaneo",
                "Análisis completo con IA",
                "Enlaces directos a fuentes",
            ],
        },
    ),
    PlanType.PRO: PlanConfig(
        id=PlanType.PRO,
        name={"en": "Pro", "es": "Pro"},
        scans_per_period=5,
        max_pain_points_per_scan=None,
        is_recurring=True,
        price_usd=10,
        features={
            "en": [
                "5 scans per month",
                "Unlimited pain points per scan",
                "Full AI analysis",
                "Direct source links",
                "Export results",
                "Prototype Prompt Generator",
            ],
            "es": [
                "5 escaneos por mes",
                "Problemas ilimitados por escaneo",
                "Análisis completo con IA",
                "Enlaces directos a fuentes",
                "Exportar resultados",
                "Generador de Prompts para Prototipos",
            ],
        },
        badge={"en": "MOST POPULAR", "es": "MÁS POPULAR"},
    ),
    PlanType.ADVANCED: PlanConfig(
        id=PlanType.ADVANCED,
        name={"en": "Advanced", "es": "Avanzado"},
        scans_per_period=15,
        max_pain_points_per_scan=None,
        is_recurring=True,
        price_usd=29,
        features={
            "en": [
                "15 scans per month",
                "Unlimited pain points per scan",
                "Full AI analysis",
                "Direct source links",
                "Export results",
                "Prototype Prompt Generator",
                "Priority support",
            ],
            "es": [
                "15 escaneos por mes",
                "Problemas ilimitados por escaneo",
                "Análisis completo con IA",
                "Enlaces directos a fuentes",
                "Exportar resultados",
                "Generador de Prompts para Prototipos",
                "Soporte prioritario",
            ],
        },
        badge={"en": "FOR POWER USERS", "es": "PARA USUARIOS AVANZADOS"},
    ),
}


def get_plan(plan_type) -> PlanConfig:
    """Obtiene la configuración de un plan (desconocido -> free)"""
    return PLANS.get(PlanType.parse(plan_type), PLANS[PlanType.FREE])


def get_scan_limit(plan_type) -> int:
    """Escaneos permitidos por período"""
    return get_plan(plan_type).scans_per_period


def get_pain_point_limit(plan_type) -> Optional[int]:
    """Máximo de problemas por escaneo (None = ilimitado)"""
    return get_plan(plan_type).max_pain_points_per_scan


def has_monthly_reset(plan_type) -> bool:
    """Indica si el plan resetea el contador cada mes"""
    return get_plan(plan_type).is_recurring


def calculate_remaining_scans(plan_type, total_scans_used: int, current_cycle_scans_used: int) -> int:
    """
    Calcula los escaneos restantes

    Plan free: usa el total de por vida.
    Planes pagos: usa el uso del ciclo de facturación actual.
    """
    plan = get_plan(plan_type)
    used = current_cycle_scans_used if plan.is_recurring else total_scans_used
    return max(0, plan.scans_per_period - used)


def can_perform_scan(plan_type, total_scans_used: int, current_cycle_scans_used: int) -> bool:
    """Verifica si el usuario puede escanear"""
    return calculate_remaining_scans(plan_type, total_scans_used, current_cycle_scans_used) > 0


def _same_day_in_month(year: int, month: int, day: int) -> datetime:
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, min(day, last_day))


def get_next_reset_date(
    subscription_start: Optional[datetime],
    plan_type,
    now: Optional[datetime] = None
) -> Optional[datetime]:
    """
    Próxima fecha de reseteo del contador

    Es el mismo día del mes en que empezó la suscripción: el de este mes si
    todavía no pasó, si no el del mes siguiente. Devuelve None para el plan
    free o si no hay fecha de inicio.
    """
    if not has_monthly_reset(plan_type) or not subscription_start:
        return None

    now = to_naive_utc(now or utcnow())
    day = to_naive_utc(subscription_start).day

    next_reset = _same_day_in_month(now.year, now.month, day)
    if next_reset <= now:
        year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
        next_reset = _same_day_in_month(year, month, day)

    return next_reset


def format_usage_display(plan_type, scans_used: int, lang: str = "en") -> str:
    """Texto de uso que se muestra en el dashboard"""
    plan = get_plan(plan_type)
    limit = plan.scans_per_period

    if plan.id == PlanType.FREE:
        if lang == "en":
            return f"Free scan used: {scans_used} / {limit}"
        return f"Escaneo gratuito usado: {scans_used} / {limit}"

    remaining = max(0, limit - scans_used)
    if lang == "en":
        return f"Scans remaining this month: {remaining} / {limit}"
    return f"Escaneos disponibles este mes: {remaining} / {limit}"


def get_upgrade_suggestions(current_plan) -> List[PlanType]:
    """Planes a los que se puede subir desde el actual"""
    plan = PlanType.parse(current_plan)
    if plan == PlanType.PRO:
        return [PlanType.ADVANCED]
    if plan == PlanType.ADVANCED:
        return []  # Ya está en el plan más alto
    return [PlanType.PRO, PlanType.ADVANCED]


def apply_pain_point_limit(result: DiscoveryResult, plan_type) -> DiscoveryResult:
    """Recorta el reporte al máximo de problemas del plan"""
    return result.limited(get_pain_point_limit(plan_type))
