"""
Errores de servicios externos
"""


class ExternalServiceError(Exception):
    """Error base al hablar con un proveedor externo"""

    service = "external"

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class LLMError(ExternalServiceError):
    service = "openai"


class PerplexityError(ExternalServiceError):
    service = "perplexity"


class FirecrawlError(ExternalServiceError):
    service = "firecrawl"


class PaymentProviderError(ExternalServiceError):
    service = "mercadopago"
