"""
Configuración centralizada del sistema. Desde aca defino todas las variables
Siguiendo el principio de configuración única (Single Source of Truth)
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv

# Cargar variables de entorno
load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True) #frozen para que sea inmutable
class DatabaseConfig:
    """Configuración de base de datos MongoDB"""
    uri: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    database: str = os.getenv("MONGO_DB", "veta_db")
    max_pool_size: int = int(os.getenv("MONGO_MAX_POOL_SIZE", "50"))


@dataclass(frozen=True)
class OpenAIConfig:
    """Configuración de OpenAI"""
    api_key: str = os.getenv("OPENAI_API_KEY", "")
    model: str = os.getenv("OPENAI_MODEL", "gpt-4o")
    coach_model: str = os.getenv("OPENAI_COACH_MODEL", "gpt-4o-mini")
    timeout_seconds: int = int(os.getenv("OPENAI_TIMEOUT_SECONDS", "60"))


@dataclass(frozen=True)
class PerplexityConfig:
    """Configuración de Perplexity (motor de investigación principal)"""
    api_key: str = os.getenv("PERPLEXITY_API_KEY", "")
    base_url: str = os.getenv("PERPLEXITY_BASE_URL", "https://api.perplexity.ai")
    model: str = os.getenv("PERPLEXITY_MODEL", "sonar-pro")
    timeout_seconds: int = int(os.getenv("PERPLEXITY_TIMEOUT_SECONDS", "90"))


@dataclass(frozen=True)
class FirecrawlConfig:
    """Configuración de Firecrawl"""
    api_key: str = os.getenv("FIRECRAWL_API_KEY", "")
    base_url: str = os.getenv("FIRECRAWL_BASE_URL", "https://api.firecrawl.dev")
    timeout_seconds: int = int(os.getenv("FIRECRAWL_TIMEOUT_SECONDS", "60"))


@dataclass(frozen=True)
class RedditConfig:
    """Configuración de acceso público a Reddit y Hacker News"""
    user_agent: str = os.getenv(
        "REDDIT_USER_AGENT",
        "Mozilla/5.0 (compatible; VetaBot/1.0; +https://veta.lat)"
    )
    timeout_seconds: int = int(os.getenv("REDDIT_TIMEOUT_SECONDS", "15"))
    hn_search_url: str = os.getenv("HN_SEARCH_URL", "https://hn.algolia.com/api/v1/search")
    hn_timeout_seconds: int = int(os.getenv("HN_TIMEOUT_SECONDS", "10"))


@dataclass(frozen=True)
class MercadoPagoConfig:
    """Configuración de MercadoPago"""
    access_token: str = os.getenv("MERCADOPAGO_ACCESS_TOKEN", "")
    base_url: str = os.getenv("MERCADOPAGO_BASE_URL", "https://api.mercadopago.com")
    timeout_seconds: int = int(os.getenv("MERCADOPAGO_TIMEOUT_SECONDS", "5"))


@dataclass(frozen=True)
class DiscoveryConfig:
    """Configuración del pipeline de descubrimiento"""
    heartbeat_seconds: float = float(os.getenv("DISCOVERY_HEARTBEAT_SECONDS", "10"))
    max_source_chars: int = int(os.getenv("DISCOVERY_MAX_SOURCE_CHARS", "10000"))
    reddit_limit: int = int(os.getenv("DISCOVERY_REDDIT_LIMIT", "10"))
    comment_posts: int = int(os.getenv("DISCOVERY_COMMENT_POSTS", "3"))
    comment_limit: int = int(os.getenv("DISCOVERY_COMMENT_LIMIT", "25"))
    hn_limit: int = int(os.getenv("DISCOVERY_HN_LIMIT", "5"))


@dataclass(frozen=True)
class AppConfig:
    """Configuración general de la aplicación web"""
    app_url: str = os.getenv("APP_URL", "https://veta.lat")
    admin_api_key: str = os.getenv("ADMIN_API_KEY", "")
    admin_emails: List[str] = field(
        default_factory=lambda: _split_csv(os.getenv("ADMIN_EMAILS", ""))
    )
    cors_origins: List[str] = field(
        default_factory=lambda: _split_csv(os.getenv("CORS_ORIGINS", "*"))
    )


@dataclass(frozen=True)
class LoggingConfig:
    """Configuración de logging"""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


@dataclass(frozen=True)
class AppSettings:
    """Configuración principal de la aplicación"""
    database: DatabaseConfig
    openai: OpenAIConfig
    perplexity: PerplexityConfig
    firecrawl: FirecrawlConfig
    reddit: RedditConfig
    mercadopago: MercadoPagoConfig
    discovery: DiscoveryConfig
    app: AppConfig
    logging: LoggingConfig

    @classmethod
    def load(cls) -> 'AppSettings':
        """Factory method para cargar configuración"""
        return cls(
            database=DatabaseConfig(),
            openai=OpenAIConfig(),
            perplexity=PerplexityConfig(),
            firecrawl=FirecrawlConfig(),
            reddit=RedditConfig(),
            mercadopago=MercadoPagoConfig(),
            discovery=DiscoveryConfig(),
            app=AppConfig(),
            logging=LoggingConfig()
        )

    def validate(self) -> None:
        """Valida que la configuración sea correcta"""
        errors = []

        if not self.openai.api_key and not self.perplexity.api_key:
            errors.append("Se requiere OPENAI_API_KEY o PERPLEXITY_API_KEY")

        timeouts = {
            "OPENAI_TIMEOUT_SECONDS": self.openai.timeout_seconds,
            "PERPLEXITY_TIMEOUT_SECONDS": self.perplexity.timeout_seconds,
            "FIRECRAWL_TIMEOUT_SECONDS": self.firecrawl.timeout_seconds,
            "MERCADOPAGO_TIMEOUT_SECONDS": self.mercadopago.timeout_seconds,
        }
        for name, value in timeouts.items():
            if value <= 0:
                errors.append(f"{name} debe ser mayor a 0")

        if self.discovery.heartbeat_seconds <= 0:
            errors.append("DISCOVERY_HEARTBEAT_SECONDS debe ser mayor a 0")

        if errors:
            raise ValueError(f"Errores de configuración: {'; '.join(errors)}")


# Instancia global de configuración (Singleton)
settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """
    Obtiene la instancia de configuración (Singleton pattern)
    """
    global settings
    if settings is None:
        settings = AppSettings.load()
        settings.validate()
    return settings


def mask_secret(secret: str, visible: int = 8) -> str:
    """Enmascara una API key para poder loguearla"""
    if not secret:
        return "NOT SET"
    return f"{secret[:visible]}..."
