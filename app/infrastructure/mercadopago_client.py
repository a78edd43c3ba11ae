"""
Cliente para la API REST de MercadoPago (Checkout Pro + consulta de pagos)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests
from tenacity import retry, retry_if_exception_type, wait_exponential_jitter, stop_after_attempt

from config.settings import MercadoPagoConfig
from infrastructure.errors import PaymentProviderError

logger = logging.getLogger(__name__)


class IPaymentClient(ABC):
    """Interface para proveedores de pago"""

    @abstractmethod
    def create_preference(self, preference: Dict[str, Any]) -> Dict[str, Any]:
        """Crea una preferencia de Checkout Pro"""
        pass

    @abstractmethod
    def get_payment(self, payment_id: str) -> Dict[str, Any]:
        """Obtiene el detalle de un pago"""
        pass


class MercadoPagoClient(IPaymentClient):
    """Implementación concreta sobre api.mercadopago.com"""

    def __init__(self, config: MercadoPagoConfig):
        self.config = config
        self.base_url = config.base_url.rstrip("/")

        if not config.access_token:
            raise ValueError("MERCADOPAGO_ACCESS_TOKEN es requerido")

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.access_token}",
            "Content-Type": "application/json",
        }

    def _handle(self, response: requests.Response, action: str) -> Dict[str, Any]:
        if 200 <= response.status_code < 300:
            return response.json()
        try:
            error = response.json().get("message") or response.text
        except ValueError:
            error = response.text
        logger.error(f"MercadoPago API Error ({action}): {response.status_code} {error}")
        raise PaymentProviderError(f"Error de MercadoPago ({action}): {error}", status_code=response.status_code)

    def create_preference(self, preference: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = requests.post(
                f"{self.base_url}/checkout/preferences",
                headers=self._get_headers(),
                json=preference,
                timeout=self.config.timeout_seconds
            )
        except requests.RequestException as e:
            raise PaymentProviderError(f"Error de conexión con MercadoPago: {e}") from e
        return self._handle(response, "create_preference")

    @retry(
        retry=retry_if_exception_type(requests.ConnectionError),
        wait=wait_exponential_jitter(initial=1, max=10),
        stop=stop_after_attempt(3),
        reraise=True
    )
    def _get(self, path: str) -> requests.Response:
        return requests.get(
            f"{self.base_url}{path}",
            headers=self._get_headers(),
            timeout=self.config.timeout_seconds
        )

    def get_payment(self, payment_id: str) -> Dict[str, Any]:
        try:
            response = self._get(f"/v1/payments/{payment_id}")
        except requests.RequestException as e:
            raise PaymentProviderError(f"Error de conexión con MercadoPago: {e}") from e
        return self._handle(response, "get_payment")


class MockPaymentClient(IPaymentClient):
    """
    Cliente mock para testing
    Simula preferencias y devuelve pagos cargados de antemano
    """

    def __init__(self, payments: Optional[Dict[str, Dict[str, Any]]] = None):
        self.payments = payments or {}
        self.preferences = []
        self.preference_counter = 0

    def create_preference(self, preference: Dict[str, Any]) -> Dict[str, Any]:
        self.preference_counter += 1
        self.preferences.append(preference)
        preference_id = f"mock_pref_{self.preference_counter}"
        return {
            "id": preference_id,
            "init_point": f"https://www.mercadopago.com/checkout/v1/redirect?pref_id={preference_id}",
            "external_reference": preference.get("external_reference"),
        }

    def get_payment(self, payment_id: str) -> Dict[str, Any]:
        payment = self.payments.get(str(payment_id))
        if payment is None:
            raise PaymentProviderError(f"Payment {payment_id} not found", status_code=404)
        return payment
