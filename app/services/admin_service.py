"""
Servicio de administración: listado de usuarios, estadísticas y acciones manuales
"""

import logging
from typing import Any, Dict, Optional

from domain.enums import PlanType
from services.subscription_service import SubscriptionService
from services.usage_service import UsageService
from utils.helpers import month_key


class AdminService:
    """Vista de administración sobre suscripciones y uso"""

    ACTIONS = ("grant_pro", "revoke_pro")

    def __init__(self, subscription_service: SubscriptionService, usage_service: UsageService):
        self.subscription_service = subscription_service
        self.usage_service = usage_service
        self.logger = logging.getLogger(__name__)

    async def list_users(self, month: Optional[str] = None) -> Dict[str, Any]:
        """
        Usuarios con su plan y uso del mes, más estadísticas globales

        Returns:
            {"users": [...], "stats": {...}}
        """
        month = month or month_key()
        subscriptions = await self.subscription_service.list_subscriptions()
        usage = await self.usage_service.get_month_records(month)

        users = []
        for subscription in subscriptions:
            users.append({
                "id": subscription.user_id,
                "email": subscription.email,
                "created_at": subscription.created_at,
                "plan_type": subscription.plan_type.value,
                "subscription_status": subscription.status.value,
                "current_period_end": subscription.current_period_end,
                "search_count": usage.get(subscription.user_id, 0),
            })

        paid = [
            s for s in subscriptions
            if s.effective_plan != PlanType.FREE
        ]
        stats = {
            "month": month,
            "total_users": len(users),
            "paid_users": len(paid),
            "pro_users": sum(1 for s in paid if s.plan_type == PlanType.PRO),
            "advanced_users": sum(1 for s in paid if s.plan_type == PlanType.ADVANCED),
            "free_users": len(users) - len(paid),
            "total_searches_this_month": sum(usage.values()),
        }
        return {"users": users, "stats": stats}

    async def perform_action(self, action: str, user_id: str, email: Optional[str] = None) -> Dict[str, Any]:
        """
        Ejecuta una acción manual sobre un usuario

        Raises:
            ValueError: acción inválida o usuario faltante
            LookupError: revoke_pro sobre un usuario sin suscripción
        """
        if action not in self.ACTIONS:
            raise ValueError("Invalid action")
        if not user_id:
            raise ValueError("userId es requerido")

        if action == "grant_pro":
            await self.subscription_service.grant_plan(user_id, email=email, plan_type=PlanType.PRO)
            self.logger.info(f"[Admin] Pro granted to {user_id}")
            return {"success": True, "message": "Pro status granted"}

        revoked = await self.subscription_service.revoke_plan(user_id)
        if not revoked:
            raise LookupError(f"Subscription for user {user_id} not found")
        self.logger.info(f"[Admin] Pro revoked for {user_id}")
        return {"success": True, "message": "Pro status revoked"}
