"""
Database Manager moderno para API asíncrona con Motor
"""

import logging
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo.errors import PyMongoError


class DatabaseManager:
    """Manager para conexiones asíncronas a MongoDB usando Motor"""

    INDEXES = {
        "subscriptions": [([("user_id", 1)], "user_id_unique_idx", True)],
        "usage_tracking": [([("user_id", 1), ("month_year", 1)], "user_month_unique_idx", True)],
        "payments": [([("mercadopago_payment_id", 1)], "payment_id_unique_idx", True)],
        "saved_reports": [
            ([("report_id", 1)], "report_id_unique_idx", True),
            ([("user_id", 1), ("created_at", -1)], "user_created_idx", False),
        ],
        "search_history": [([("user_id", 1), ("created_at", -1)], "user_created_idx", False)],
        "success_stories": [([("story_id", 1)], "story_id_unique_idx", True)],
        "workshop_registrations": [([("email", 1)], "email_unique_idx", True)],
    }

    def __init__(self, connection_string: str, database_name: str, max_pool_size: int = 50):
        self.connection_string = connection_string
        self.database_name = database_name
        self.max_pool_size = max_pool_size
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None
        self.logger = logging.getLogger(__name__)

    async def connect(self) -> None:
        """Conecta a MongoDB"""
        try:
            self.client = AsyncIOMotorClient(self.connection_string, maxPoolSize=self.max_pool_size)
            self.db = self.client[self.database_name]

            # Verificar conexión
            await self.db.command("ping")

            self.logger.info(f"Connected to MongoDB: {self.database_name}")

        except Exception as e:
            self.logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def ensure_indexes(self) -> None:
        """Crea índices necesarios para performance y unicidad"""
        for collection_name, indexes in self.INDEXES.items():
            collection = self.get_collection(collection_name)
            for keys, name, unique in indexes:
                try:
                    await collection.create_index(keys, name=name, unique=unique)
                except PyMongoError as e:
                    self.logger.error(f"Error creando índice {name} en {collection_name}: {e}")
        self.logger.info("Índices verificados/creados")

    async def close(self) -> None:
        """Cierra la conexión"""
        if self.client:
            self.client.close()
            self.logger.info("MongoDB connection closed")

    def get_collection(self, collection_name: str) -> AsyncIOMotorCollection:
        """Obtiene una colección específica"""
        if self.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self.db[collection_name]

    # Propiedades para acceso directo a colecciones
    @property
    def subscriptions(self) -> AsyncIOMotorCollection:
        """Suscripciones por usuario"""
        return self.get_collection("subscriptions")

    @property
    def usage_tracking(self) -> AsyncIOMotorCollection:
        """Contadores de escaneos por usuario y mes"""
        return self.get_collection("usage_tracking")

    @property
    def payments(self) -> AsyncIOMotorCollection:
        """Pagos recibidos via webhook"""
        return self.get_collection("payments")

    @property
    def saved_reports(self) -> AsyncIOMotorCollection:
        """Reportes guardados"""
        return self.get_collection("saved_reports")

    @property
    def search_history(self) -> AsyncIOMotorCollection:
        """Historial de búsquedas"""
        return self.get_collection("search_history")

    @property
    def success_stories(self) -> AsyncIOMotorCollection:
        """Casos de éxito"""
        return self.get_collection("success_stories")

    @property
    def workshop_registrations(self) -> AsyncIOMotorCollection:
        """Inscripciones al workshop"""
        return self.get_collection("workshop_registrations")

    async def health_check(self) -> bool:
        """Verifica la salud de la conexión"""
        try:
            if self.db is None:
                return False
            await self.db.command("ping")
            return True
        except Exception as e:
            self.logger.error(f"Health check failed: {e}")
            return False
