"""
Script para crear los índices de Veta
Ejecutar una vez al preparar una base nueva (la API también los verifica al arrancar)
"""

import asyncio
import logging
import sys
import os

# Agregar la carpeta padre al path para imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import get_settings
from infrastructure.database_manager import DatabaseManager

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def create_indexes():
    """Crea los índices definidos en DatabaseManager.INDEXES y los lista"""
    settings = get_settings()
    db_manager = DatabaseManager(settings.database.uri, settings.database.database)
    await db_manager.connect()

    try:
        await db_manager.ensure_indexes()

        for collection_name in DatabaseManager.INDEXES:
            indexes = await db_manager.get_collection(collection_name).list_indexes().to_list(None)
            names = ", ".join(index.get("name") for index in indexes)
            logger.info(f"{collection_name}: {names}")

    finally:
        await db_manager.close()


if __name__ == "__main__":
    asyncio.run(create_indexes())
