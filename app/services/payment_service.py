"""
Servicio de pagos con MercadoPago Checkout Pro

Flujo:
1. create_checkout crea la preferencia y devuelve el init_point
2. MercadoPago notifica al webhook con el id del pago
3. handle_notification consulta el pago al proveedor y, si está aprobado,
   activa el plan o confirma la inscripción al workshop
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from pymongo.errors import DuplicateKeyError

from config.settings import AppConfig
from domain.enums import PaymentStatus, PlanType, ProductType
from domain.models import PaymentModel
from domain.plans import get_plan
from infrastructure.database_manager import DatabaseManager
from infrastructure.mercadopago_client import IPaymentClient
from services.subscription_service import SubscriptionService
from services.workshop_service import WorkshopService
from utils import analytics
from utils.helpers import safe_get_nested, utcnow

WORKSHOP_REFERENCE_PREFIX = "workshop-"


@dataclass(frozen=True)
class CheckoutProduct:
    """Producto que se puede cobrar con Checkout Pro"""
    item_id: str
    title: str
    description: str
    price_usd: float
    statement_descriptor: str
    product_type: ProductType
    plan_type: Optional[PlanType] = None


PRODUCTS: Dict[str, CheckoutProduct] = {
    "pro": CheckoutProduct(
        item_id="veta-pro-monthly",
        title="Veta Pro - Suscripción Mensual",
        description="5 escaneos por mes de problemas de negocio",
        price_usd=get_plan(PlanType.PRO).price_usd,
        statement_descriptor="VETA PRO",
        product_type=ProductType.SUBSCRIPTION,
        plan_type=PlanType.PRO,
    ),
    "advanced": CheckoutProduct(
        item_id="veta-advanced-monthly",
        title="Veta Advanced - Suscripción Mensual",
        description="15 escaneos por mes de problemas de negocio",
        price_usd=get_plan(PlanType.ADVANCED).price_usd,
        statement_descriptor="VETA ADVANCED",
        product_type=ProductType.SUBSCRIPTION,
        plan_type=PlanType.ADVANCED,
    ),
    "workshop": CheckoutProduct(
        item_id="veta-workshop-validacion",
        title="Workshop: Cómo elegir un buen problema y validarlo",
        description="Workshop en vivo sobre selección y validación de problemas usando Veta",
        price_usd=19,
        statement_descriptor="VETA WORKSHOP",
        product_type=ProductType.WORKSHOP,
    ),
}


def build_external_reference(user_id: str, product: CheckoutProduct) -> str:
    """<user_id>:<plan> para suscripciones, workshop-<user_id> para el workshop"""
    if product.product_type == ProductType.WORKSHOP:
        return f"{WORKSHOP_REFERENCE_PREFIX}{user_id}"
    return f"{user_id}:{product.plan_type.value}"


def parse_external_reference(reference: str) -> Tuple[str, ProductType, Optional[PlanType]]:
    """
    Interpreta el external_reference de un pago

    Un user_id sin plan corresponde a Pro (preferencias creadas antes de
    existir el plan Advanced).
    """
    reference = (reference or "").strip()
    if reference.startswith(WORKSHOP_REFERENCE_PREFIX):
        return reference[len(WORKSHOP_REFERENCE_PREFIX):], ProductType.WORKSHOP, None

    if ":" in reference:
        user_id, plan_value = reference.rsplit(":", 1)
        plan = PlanType.parse(plan_value)
        if plan == PlanType.FREE:
            plan = PlanType.PRO
        return user_id, ProductType.SUBSCRIPTION, plan

    return reference, ProductType.SUBSCRIPTION, PlanType.PRO


class PaymentService:
    """Checkout y confirmación de pagos"""

    def __init__(
        self,
        db_manager: DatabaseManager,
        payment_client: IPaymentClient,
        subscription_service: SubscriptionService,
        workshop_service: WorkshopService,
        app_config: AppConfig
    ):
        self.db_manager = db_manager
        self.payments_collection = db_manager.get_collection("payments")
        self.payment_client = payment_client
        self.subscription_service = subscription_service
        self.workshop_service = workshop_service
        self.app_config = app_config
        self.logger = logging.getLogger(__name__)

    def _build_preference(self, user_id: str, email: str, product: CheckoutProduct) -> Dict[str, Any]:
        app_url = self.app_config.app_url.rstrip("/")

        if product.product_type == ProductType.WORKSHOP:
            back_urls = {
                "success": f"{app_url}/workshop/success",
                "failure": f"{app_url}/workshop?payment=failed",
                "pending": f"{app_url}/workshop?payment=pending",
            }
        else:
            back_urls = {
                "success": f"{app_url}/payment/success",
                "failure": f"{app_url}/payment/failure",
                "pending": f"{app_url}/payment/pending",
            }

        return {
            "items": [{
                "id": product.item_id,
                "title": product.title,
                "description": product.description,
                "quantity": 1,
                "unit_price": product.price_usd,
                "currency_id": "USD",
            }],
            "back_urls": back_urls,
            "auto_return": "approved",
            "notification_url": f"{app_url}/api/webhook/mercadopago",
            "external_reference": build_external_reference(user_id, product),
            "payer": {"email": email},
            "payment_methods": {"installments": 1},
            "statement_descriptor": product.statement_descriptor,
            "binary_mode": True,
        }

    async def create_checkout(self, user_id: str, email: str, product_key: str) -> Dict[str, Any]:
        """
        Crea una preferencia de pago

        Args:
            user_id: Usuario que paga
            email: Email del pagador
            product_key: "pro", "advanced" o "workshop"

        Returns:
            {"preference_id", "init_point"}

        Raises:
            ValueError: datos faltantes o producto desconocido
        """
        if not user_id or not email:
            raise ValueError("Missing user data")

        product = PRODUCTS.get((product_key or "").strip().lower())
        if product is None:
            raise ValueError(f"Producto desconocido: {product_key}")

        preference = self._build_preference(user_id, email, product)
        response = await asyncio.to_thread(self.payment_client.create_preference, preference)

        self.logger.info(
            f"MercadoPago preference created: {response.get('id')} "
            f"(ref={preference['external_reference']})"
        )
        return {
            "preference_id": response.get("id"),
            "init_point": response.get("init_point"),
        }

    async def get_payment_record(self, payment_id: str) -> Optional[PaymentModel]:
        data = await self.payments_collection.find_one({"mercadopago_payment_id": str(payment_id)})
        if data:
            return PaymentModel.from_dict(data)
        return None

    async def handle_notification(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Procesa una notificación del webhook

        Solo se procesan notificaciones de tipo "payment". El estado del pago
        se consulta al proveedor, nunca se toma del cuerpo de la notificación.
        Cada pago aprobado se aplica una sola vez.
        """
        notification_type = body.get("type") or body.get("topic")
        if notification_type != "payment":
            self.logger.info(f"Webhook ignored (type={notification_type})")
            return {"received": True, "processed": False}

        payment_id = safe_get_nested(body, "data.id") or body.get("id")
        if not payment_id:
            raise ValueError("Notificación de pago sin id")
        payment_id = str(payment_id)

        payment = await asyncio.to_thread(self.payment_client.get_payment, payment_id)
        status = payment.get("status")

        if status != PaymentStatus.APPROVED.value:
            self.logger.info(f"Payment {payment_id} not approved (status={status})")
            return {"received": True, "processed": False, "status": status}

        if await self.get_payment_record(payment_id):
            self.logger.info(f"Payment {payment_id} already processed")
            return {"received": True, "processed": False, "status": status, "duplicate": True}

        user_id, product_type, plan_type = parse_external_reference(payment.get("external_reference"))
        if not user_id:
            raise ValueError(f"Pago {payment_id} sin external_reference válido")

        # El índice único sobre mercadopago_payment_id reserva el pago antes de aplicarlo
        record = PaymentModel(
            user_id=user_id,
            mercadopago_payment_id=payment_id,
            amount=float(payment.get("transaction_amount") or 0.0),
            currency=payment.get("currency_id") or "USD",
            status=PaymentStatus.APPROVED,
            payment_type=product_type,
            plan_type=plan_type,
            created_at=utcnow(),
        )
        try:
            result = await self.payments_collection.insert_one(record.to_dict())
        except DuplicateKeyError:
            self.logger.info(f"Payment {payment_id} already claimed by another notification")
            return {"received": True, "processed": False, "status": status, "duplicate": True}
        record._id = result.inserted_id

        payer_email = safe_get_nested(payment, "payer.email")

        try:
            if product_type == ProductType.WORKSHOP:
                payer_name = safe_get_nested(payment, "payer.first_name", "") or ""
                await self.workshop_service.mark_paid(payer_email, payment_id, full_name=payer_name)
            else:
                await self.subscription_service.activate_plan(
                    user_id, plan_type, payment_id=payment_id, email=payer_email
                )
                analytics.upgrade_completed(user_id, plan_type.value)
        except Exception:
            # Libera el pago para que el reintento de MercadoPago lo vuelva a aplicar
            await self.payments_collection.delete_one({"_id": record._id})
            raise

        self.logger.info(f"Payment {payment_id} applied to user {user_id} ({product_type.value})")
        return {
            "received": True,
            "processed": True,
            "status": status,
            "user_id": user_id,
            "payment_type": product_type.value,
            "plan_type": plan_type.value if plan_type else None,
        }
