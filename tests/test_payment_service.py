"""
Tests para services.payment_service y services.workshop_service
Checkout Pro y webhook de MercadoPago con cliente mock
"""

import unittest
from unittest.mock import AsyncMock, patch

from mongomock_motor import AsyncMongoMockClient

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'app'))

from config.settings import AppConfig
from domain.enums import PlanType, ProductType
from infrastructure.database_manager import DatabaseManager
from infrastructure.errors import PaymentProviderError
from infrastructure.mercadopago_client import MockPaymentClient
from services.payment_service import PaymentService, parse_external_reference
from services.subscription_service import SubscriptionService
from services.workshop_service import WorkshopService


def make_db_manager() -> DatabaseManager:
    db_manager = DatabaseManager("mongodb://localhost:27017", "veta_test")
    db_manager.client = AsyncMongoMockClient()
    db_manager.db = db_manager.client["veta_test"]
    return db_manager


def approved_payment(reference, amount=10.0, email="u1@veta.lat"):
    return {
        "id": 555,
        "status": "approved",
        "external_reference": reference,
        "transaction_amount": amount,
        "currency_id": "USD",
        "payer": {"email": email, "first_name": "Ana"},
    }


class TestExternalReference(unittest.TestCase):
    """Tests de parse_external_reference"""

    def test_subscription_with_plan(self):
        assert parse_external_reference("u1:advanced") == ("u1", ProductType.SUBSCRIPTION, PlanType.ADVANCED)

    def test_bare_user_is_pro(self):
        assert parse_external_reference("u1") == ("u1", ProductType.SUBSCRIPTION, PlanType.PRO)

    def test_workshop(self):
        assert parse_external_reference("workshop-u1") == ("u1", ProductType.WORKSHOP, None)

    def test_free_plan_is_not_payable(self):
        assert parse_external_reference("u1:free")[2] == PlanType.PRO


class TestPaymentService(unittest.IsolatedAsyncioTestCase):
    """Tests de checkout y webhook"""

    async def asyncSetUp(self):
        self.db_manager = db_manager = make_db_manager()
        self.client = MockPaymentClient()
        self.subscriptions = SubscriptionService(db_manager)
        self.workshop = WorkshopService(db_manager)
        self.service = PaymentService(
            db_manager, self.client, self.subscriptions, self.workshop,
            AppConfig(app_url="https://veta.test/")
        )

    async def test_checkout_for_advanced(self):
        result = await self.service.create_checkout("u1", "u1@veta.lat", "advanced")

        assert result["preference_id"] == "mock_pref_1"
        assert "pref_id=mock_pref_1" in result["init_point"]

        preference = self.client.preferences[0]
        assert preference["external_reference"] == "u1:advanced"
        assert preference["items"][0]["unit_price"] == 29
        assert preference["notification_url"] == "https://veta.test/api/webhook/mercadopago"
        assert preference["back_urls"]["success"] == "https://veta.test/payment/success"
        assert preference["auto_return"] == "approved"
        assert preference["payment_methods"] == {"installments": 1}

    async def test_checkout_for_workshop(self):
        await self.service.create_checkout("u1", "u1@veta.lat", "workshop")
        preference = self.client.preferences[0]

        assert preference["external_reference"] == "workshop-u1"
        assert preference["items"][0]["unit_price"] == 19
        assert preference["statement_descriptor"] == "VETA WORKSHOP"
        assert preference["binary_mode"] is True

    async def test_checkout_validation(self):
        with self.assertRaises(ValueError):
            await self.service.create_checkout("", "u1@veta.lat", "pro")
        with self.assertRaises(ValueError):
            await self.service.create_checkout("u1", "u1@veta.lat", "builder")

    async def test_approved_payment_activates_plan_once(self):
        self.client.payments["555"] = approved_payment("u1:advanced", amount=29.0)
        body = {"type": "payment", "action": "payment.updated", "data": {"id": "555"}}

        result = await self.service.handle_notification(body)
        assert result["processed"] is True
        assert result["plan_type"] == "advanced"

        subscription = await self.subscriptions.get_subscription("u1")
        assert subscription.plan_type == PlanType.ADVANCED
        assert subscription.mercadopago_payment_id == "555"

        record = await self.service.get_payment_record("555")
        assert record.amount == 29.0
        assert record.payment_type == ProductType.SUBSCRIPTION

        again = await self.service.handle_notification(body)
        assert again["duplicate"] is True
        assert await self.service.payments_collection.count_documents({}) == 1

    async def test_concurrent_delivery_is_applied_once(self):
        await self.db_manager.ensure_indexes()
        self.client.payments["555"] = approved_payment("u1:advanced", amount=29.0)
        # Otra entrega ya reservó el pago pero todavía no lo aplicó
        await self.service.payments_collection.insert_one(
            {"mercadopago_payment_id": "555", "user_id": "u1", "status": "approved"}
        )

        with patch.object(self.service, "get_payment_record", AsyncMock(return_value=None)):
            result = await self.service.handle_notification({"type": "payment", "data": {"id": "555"}})

        assert result["duplicate"] is True
        assert await self.subscriptions.get_subscription("u1") is None
        assert await self.service.payments_collection.count_documents({}) == 1

    async def test_claim_released_when_apply_fails(self):
        self.client.payments["555"] = approved_payment("u1:pro")

        with patch.object(self.subscriptions, "activate_plan", AsyncMock(side_effect=RuntimeError("mongo caído"))):
            with self.assertRaises(RuntimeError):
                await self.service.handle_notification({"type": "payment", "data": {"id": "555"}})

        assert await self.service.get_payment_record("555") is None
        result = await self.service.handle_notification({"type": "payment", "data": {"id": "555"}})
        assert result["processed"] is True

    async def test_status_comes_from_provider(self):
        # El cuerpo dice approved pero el proveedor no
        self.client.payments["555"] = dict(approved_payment("u1"), status="rejected")
        body = {"type": "payment", "status": "approved", "external_reference": "u1", "data": {"id": 555}}

        result = await self.service.handle_notification(body)
        assert result["processed"] is False
        assert await self.subscriptions.get_subscription("u1") is None

    async def test_workshop_payment_marks_registration(self):
        await self.workshop.register("Ana Pérez", "U1@veta.lat", "+56911111111")
        self.client.payments["555"] = approved_payment("workshop-u1", amount=19.0)

        result = await self.service.handle_notification({"type": "payment", "data": {"id": "555"}})
        assert result["payment_type"] == "workshop"

        registration = await self.workshop.get_registration("u1@veta.lat")
        assert registration.paid is True
        assert registration.full_name == "Ana Pérez"
        assert registration.mercadopago_payment_id == "555"

    async def test_other_notifications_ignored(self):
        result = await self.service.handle_notification({"type": "merchant_order", "data": {"id": "1"}})
        assert result == {"received": True, "processed": False}

    async def test_missing_payment_id(self):
        with self.assertRaises(ValueError):
            await self.service.handle_notification({"type": "payment", "data": {}})

    async def test_unknown_payment_propagates(self):
        with self.assertRaises(PaymentProviderError):
            await self.service.handle_notification({"type": "payment", "data": {"id": "999"}})


class TestWorkshopService(unittest.IsolatedAsyncioTestCase):
    """Tests de inscripciones al workshop"""

    async def asyncSetUp(self):
        self.service = WorkshopService(make_db_manager())

    async def test_register_and_update_by_email(self):
        first = await self.service.register("Ana", "ana@veta.lat", "111")
        assert first.paid is False

        await self.service.register("Ana María", " ANA@veta.lat ", "222")
        registrations = await self.service.list_registrations()
        assert len(registrations) == 1
        assert registrations[0].full_name == "Ana María"
        assert registrations[0].mobile == "222"

    async def test_missing_fields(self):
        with self.assertRaises(ValueError):
            await self.service.register("Ana", "ana@veta.lat", "")

    async def test_payment_before_registration(self):
        registration = await self.service.mark_paid("nuevo@veta.lat", "777", full_name="Nuevo")
        assert registration.paid is True
        assert registration.full_name == "Nuevo"


if __name__ == '__main__':
    unittest.main()
