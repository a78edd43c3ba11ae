"""
Tracking liviano de eventos de conversión
Los eventos se emiten como líneas de log estructuradas
"""

import json
import logging
from typing import Any, Dict

from domain.enums import AnalyticsEvent, PaywallType
from utils.helpers import utcnow

logger = logging.getLogger(__name__)


def track_event(event: AnalyticsEvent, **data: Any) -> Dict[str, Any]:
    """Registra un evento y devuelve el payload emitido"""
    payload = {"event": event.value, "timestamp": utcnow().isoformat()}
    payload.update({key: value for key, value in data.items() if value is not None})
    logger.info(f"[Analytics] {event.value} {json.dumps(payload, default=str, ensure_ascii=False)}")
    return payload


def search_completed_free(query: str, result_count: int) -> Dict[str, Any]:
    return track_event(AnalyticsEvent.SEARCH_COMPLETED_FREE, query=query, result_count=result_count)


def paywall_viewed(paywall_type: PaywallType, user_id: str = None) -> Dict[str, Any]:
    return track_event(AnalyticsEvent.PAYWALL_VIEWED, paywall_type=paywall_type.value, user_id=user_id)


def upgrade_clicked(source: str, user_id: str = None) -> Dict[str, Any]:
    return track_event(AnalyticsEvent.UPGRADE_CLICKED, source=source, user_id=user_id)


def upgrade_completed(user_id: str, plan_type: str = None) -> Dict[str, Any]:
    return track_event(AnalyticsEvent.UPGRADE_COMPLETED, user_id=user_id, plan_type=plan_type)
