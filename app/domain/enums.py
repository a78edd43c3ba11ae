"""
Enums para el dominio de la aplicación
"""

from enum import Enum


class StreamEventType(Enum):
    """Tipos de eventos del stream de descubrimiento"""
    PROGRESS = "progress"
    ERROR = "error"
    RESULT = "result"


class StepStatus(Enum):
    """Estado de un paso de progreso"""
    ACTIVE = "active"
    COMPLETED = "completed"


class PlanType(Enum):
    """Planes de suscripción"""
    FREE = "free"            # Un escaneo de por vida
    PRO = "pro"              # 5 escaneos por mes
    ADVANCED = "advanced"    # 15 escaneos por mes

    @classmethod
    def parse(cls, value) -> "PlanType":
        """Convierte un valor libre a PlanType (desconocido -> FREE)"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.FREE


class SubscriptionStatus(Enum):
    """Estados de una suscripción"""
    ACTIVE = "active"
    PENDING = "pending"
    CANCELED = "canceled"
    EXPIRED = "expired"


class PaymentStatus(Enum):
    """Estados de pago reportados por MercadoPago"""
    APPROVED = "approved"
    PENDING = "pending"
    IN_PROCESS = "in_process"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class ProductType(Enum):
    """Tipos de producto que se pueden cobrar"""
    SUBSCRIPTION = "subscription"
    WORKSHOP = "workshop"


class AnalyticsEvent(Enum):
    """Eventos de conversión"""
    SEARCH_COMPLETED_FREE = "search_completed_free"
    PAYWALL_VIEWED = "paywall_viewed"
    UPGRADE_CLICKED = "upgrade_clicked"
    UPGRADE_COMPLETED = "upgrade_completed"


class PaywallType(Enum):
    """Lugares donde se muestra el paywall"""
    FIRST_SEARCH = "first_search"
    COMPARISON = "comparison"
    LIMIT_REACHED = "limit_reached"
    LOCKED_CONTENT = "locked_content"


class MarketScope(Enum):
    """Alcance de mercado de un problema seleccionado"""
    LOCAL_LATAM = "local_latam"
    REGIONAL_LATAM = "regional_latam"
    INTERNATIONAL_FACING = "international_facing"
