"""
Servicio para gestión de suscripciones de usuarios
"""

import logging
from datetime import datetime
from typing import List, Optional

from domain.enums import PlanType, SubscriptionStatus
from domain.models import SubscriptionModel
from infrastructure.database_manager import DatabaseManager
from utils.helpers import add_months, utcnow


class SubscriptionService:
    """Alta, activación y revocación de planes"""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.subscriptions_collection = db_manager.get_collection("subscriptions")
        self.logger = logging.getLogger(__name__)

    async def get_subscription(self, user_id: str) -> Optional[SubscriptionModel]:
        """Obtiene la suscripción de un usuario"""
        data = await self.subscriptions_collection.find_one({"user_id": user_id})
        if data:
            return SubscriptionModel.from_dict(data)
        return None

    async def init_subscription(self, user_id: str, email: Optional[str] = None) -> bool:
        """
        Crea la suscripción free de un usuario nuevo

        Returns:
            True si se creó, False si ya existía
        """
        if not user_id:
            raise ValueError("user_id es requerido")

        existing = await self.get_subscription(user_id)
        if existing:
            return False

        now = utcnow()
        subscription = SubscriptionModel(
            user_id=user_id,
            email=email,
            plan_type=PlanType.FREE,
            status=SubscriptionStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        result = await self.subscriptions_collection.insert_one(subscription.to_dict())
        subscription._id = result.inserted_id

        self.logger.info(f"Created free subscription for user {user_id}")
        return True

    async def activate_plan(
        self,
        user_id: str,
        plan_type: PlanType,
        payment_id: Optional[str] = None,
        email: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> SubscriptionModel:
        """Activa un plan pago por un mes desde ahora (upsert por user_id)"""
        now = now or utcnow()
        updates = {
            "plan_type": plan_type.value,
            "status": SubscriptionStatus.ACTIVE.value,
            "mercadopago_payment_id": payment_id,
            "current_period_start": now,
            "current_period_end": add_months(now, 1),
            "updated_at": now,
        }
        if email:
            updates["email"] = email

        await self.subscriptions_collection.update_one(
            {"user_id": user_id},
            {"$set": updates, "$setOnInsert": {"user_id": user_id, "created_at": now}},
            upsert=True
        )

        self.logger.info(f"Activated plan {plan_type.value} for user {user_id}")
        return await self.get_subscription(user_id)

    async def grant_plan(
        self,
        user_id: str,
        email: Optional[str] = None,
        plan_type: PlanType = PlanType.PRO
    ) -> SubscriptionModel:
        """Otorga un plan manualmente (admin), sin período de facturación"""
        if not user_id:
            raise ValueError("user_id es requerido")

        now = utcnow()
        updates = {
            "plan_type": plan_type.value,
            "status": SubscriptionStatus.ACTIVE.value,
            "updated_at": now,
        }
        if email:
            updates["email"] = email

        await self.subscriptions_collection.update_one(
            {"user_id": user_id},
            {"$set": updates, "$setOnInsert": {"user_id": user_id, "created_at": now}},
            upsert=True
        )
        self.logger.info(f"Granted plan {plan_type.value} to user {user_id}")
        return await self.get_subscription(user_id)

    async def revoke_plan(self, user_id: str) -> bool:
        """Vuelve al usuario a free y cancela la suscripción"""
        result = await self.subscriptions_collection.update_one(
            {"user_id": user_id},
            {"$set": {
                "plan_type": PlanType.FREE.value,
                "status": SubscriptionStatus.CANCELED.value,
                "updated_at": utcnow(),
            }}
        )
        if result.matched_count:
            self.logger.info(f"Revoked paid plan for user {user_id}")
        return result.matched_count > 0

    async def list_subscriptions(self) -> List[SubscriptionModel]:
        """Lista todas las suscripciones (más nuevas primero)"""
        cursor = self.subscriptions_collection.find({}).sort("created_at", -1)
        return [SubscriptionModel.from_dict(doc) async for doc in cursor]
