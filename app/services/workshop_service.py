"""
Servicio de inscripciones al workshop en vivo
"""

import logging
from typing import List, Optional

from domain.models import WorkshopRegistrationModel
from infrastructure.database_manager import DatabaseManager
from utils.helpers import utcnow


class WorkshopService:
    """Inscripciones al workshop (una por email)"""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.registrations_collection = db_manager.get_collection("workshop_registrations")
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _normalize_email(email: Optional[str]) -> str:
        return (email or "").strip().lower()

    async def get_registration(self, email: str) -> Optional[WorkshopRegistrationModel]:
        data = await self.registrations_collection.find_one({"email": self._normalize_email(email)})
        if data:
            return WorkshopRegistrationModel.from_dict(data)
        return None

    async def register(self, full_name: str, email: str, mobile: str) -> WorkshopRegistrationModel:
        """
        Inscribe a una persona en el workshop

        Si el email ya estaba inscripto se actualizan nombre y celular.

        Raises:
            ValueError: si falta algún campo requerido
        """
        full_name = (full_name or "").strip()
        email = self._normalize_email(email)
        mobile = (mobile or "").strip()
        if not full_name or not email or not mobile:
            raise ValueError("Missing required fields")

        now = utcnow()
        existing = await self.get_registration(email)
        if existing:
            self.logger.info(f"Workshop: {email} already registered, updating details")
            await self.registrations_collection.update_one(
                {"email": email},
                {"$set": {"full_name": full_name, "mobile": mobile, "updated_at": now}}
            )
            return await self.get_registration(email)

        registration = WorkshopRegistrationModel(
            full_name=full_name,
            email=email,
            mobile=mobile,
            created_at=now,
            updated_at=now,
        )
        result = await self.registrations_collection.insert_one(registration.to_dict())
        registration._id = result.inserted_id

        self.logger.info(f"Workshop: new registration {email}")
        return registration

    async def mark_paid(self, email: str, payment_id: str, full_name: str = "") -> WorkshopRegistrationModel:
        """Marca la inscripción como pagada (la crea si el pago llegó antes que el formulario)"""
        email = self._normalize_email(email)
        if not email:
            raise ValueError("Se requiere el email del pagador")

        now = utcnow()
        await self.registrations_collection.update_one(
            {"email": email},
            {
                "$set": {"paid": True, "mercadopago_payment_id": payment_id, "updated_at": now},
                "$setOnInsert": {"email": email, "full_name": full_name, "mobile": "", "created_at": now},
            },
            upsert=True
        )
        self.logger.info(f"Workshop: payment {payment_id} confirmed for {email}")
        return await self.get_registration(email)

    async def list_registrations(self) -> List[WorkshopRegistrationModel]:
        cursor = self.registrations_collection.find({}).sort("created_at", -1)
        return [WorkshopRegistrationModel.from_dict(doc) async for doc in cursor]
