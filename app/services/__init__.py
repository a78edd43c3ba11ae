"""
Servicios de la aplicación
"""

# Descubrimiento de puntos de dolor
from .analysis_service import AnalysisService
from .discovery_service import DiscoveryService

# Suscripciones, uso y pagos
from .subscription_service import SubscriptionService
from .usage_service import UsageService
from .payment_service import PaymentService
from .workshop_service import WorkshopService

# Contenido y herramientas
from .report_service import ReportService
from .story_service import StoryService
from .coach_service import CoachService
from .prototype_service import PrototypeService
from .admin_service import AdminService

__all__ = [
    'AnalysisService',
    'DiscoveryService',
    'SubscriptionService',
    'UsageService',
    'PaymentService',
    'WorkshopService',
    'ReportService',
    'StoryService',
    'CoachService',
    'PrototypeService',
    'AdminService'
]
