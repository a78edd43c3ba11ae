"""
Medición de escaneos por usuario

Cada escaneo incrementa el contador del mes (user_id, YYYY-MM). El total de
por vida es la suma de todos los meses y es lo que limita al plan free.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from domain.enums import PlanType
from domain.models import UsageRecord
from domain.plans import (
    get_plan, calculate_remaining_scans, can_perform_scan,
    get_next_reset_date, format_usage_display, get_upgrade_suggestions
)
from infrastructure.database_manager import DatabaseManager
from services.subscription_service import SubscriptionService
from utils.helpers import month_key, utcnow


class UsageService:
    """Contadores de uso y estado de cuota"""

    def __init__(self, db_manager: DatabaseManager, subscription_service: SubscriptionService):
        self.db_manager = db_manager
        self.usage_collection = db_manager.get_collection("usage_tracking")
        self.subscription_service = subscription_service
        self.logger = logging.getLogger(__name__)

    async def record_scan(self, user_id: str, now: Optional[datetime] = None) -> UsageRecord:
        """Suma un escaneo al contador del mes (lo crea si no existe)"""
        now = now or utcnow()
        month = month_key(now)

        await self.usage_collection.update_one(
            {"user_id": user_id, "month_year": month},
            {"$inc": {"search_count": 1}, "$set": {"updated_at": now}},
            upsert=True
        )

        data = await self.usage_collection.find_one({"user_id": user_id, "month_year": month})
        record = UsageRecord.from_dict(data)
        self.logger.info(f"Scan recorded for user {user_id} ({month}): {record.search_count}")
        return record

    async def get_month_count(self, user_id: str, month: Optional[str] = None) -> int:
        """Escaneos del usuario en un mes (por defecto el actual)"""
        data = await self.usage_collection.find_one(
            {"user_id": user_id, "month_year": month or month_key()}
        )
        return data.get("search_count", 0) if data else 0

    async def get_total_count(self, user_id: str) -> int:
        """Escaneos del usuario de por vida"""
        total = 0
        async for doc in self.usage_collection.find({"user_id": user_id}):
            total += doc.get("search_count", 0)
        return total

    async def get_month_records(self, month: Optional[str] = None) -> Dict[str, int]:
        """Contadores de todos los usuarios en un mes: {user_id: search_count}"""
        counts = {}
        async for doc in self.usage_collection.find({"month_year": month or month_key()}):
            counts[doc["user_id"]] = doc.get("search_count", 0)
        return counts

    async def get_usage_status(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        lang: str = "en"
    ) -> Dict[str, Any]:
        """
        Estado de cuota del usuario

        Returns:
            plan, escaneos usados, límite, restantes, can_search, próxima
            fecha de reseteo y texto para el dashboard
        """
        now = now or utcnow()
        subscription = await self.subscription_service.get_subscription(user_id)
        plan_type = subscription.effective_plan if subscription else PlanType.FREE
        plan = get_plan(plan_type)

        total_used = await self.get_total_count(user_id)
        cycle_used = await self.get_month_count(user_id, month_key(now))
        used = cycle_used if plan.is_recurring else total_used

        period_start = None
        if subscription:
            period_start = subscription.current_period_start or subscription.created_at
        next_reset = get_next_reset_date(period_start, plan_type, now)

        return {
            "user_id": user_id,
            "plan_type": plan_type.value,
            "subscription_status": subscription.status.value if subscription else "none",
            "scans_used": used,
            "total_scans_used": total_used,
            "scan_limit": plan.scans_per_period,
            "remaining_scans": calculate_remaining_scans(plan_type, total_used, cycle_used),
            "can_search": can_perform_scan(plan_type, total_used, cycle_used),
            "max_pain_points_per_scan": plan.max_pain_points_per_scan,
            "next_reset_date": next_reset,
            "usage_display": format_usage_display(plan_type, used, lang),
            "upgrade_options": [option.value for option in get_upgrade_suggestions(plan_type)],
        }
