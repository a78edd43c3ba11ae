"""
Servicio de reportes guardados e historial de búsquedas
"""

import logging
from typing import Any, Dict, List, Optional

from domain.models import SavedReportModel, SearchHistoryEntry
from infrastructure.database_manager import DatabaseManager
from utils.helpers import utcnow


class ReportService:
    """Reportes del usuario y su historial de búsquedas"""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.reports_collection = db_manager.get_collection("saved_reports")
        self.history_collection = db_manager.get_collection("search_history")
        self.logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Reportes
    # ------------------------------------------------------------------

    async def save_report(self, user_id: str, query: str, results: Dict[str, Any]) -> SavedReportModel:
        """
        Guarda un reporte de descubrimiento

        El título es "Análisis: <query>" y se guarda el JSON completo de
        resultados para poder reabrirlo.
        """
        if not user_id or not query:
            raise ValueError("user_id y query son requeridos")
        problems = results.get("problems") if isinstance(results, dict) else None
        if not isinstance(problems, list):
            raise ValueError("results debe contener una lista de problems")

        report = SavedReportModel(
            user_id=user_id,
            title=f"Análisis: {query}",
            query=query,
            problem_count=len(problems),
            results=results,
            created_at=utcnow(),
        )
        report.generate_report_id()

        inserted = await self.reports_collection.insert_one(report.to_dict())
        report._id = inserted.inserted_id

        self.logger.info(f"Saved report {report.report_id} for user {user_id}")
        return report

    async def list_reports(self, user_id: str, limit: int = 50) -> List[SavedReportModel]:
        """Reportes del usuario, más nuevos primero (sin resultados)"""
        cursor = self.reports_collection.find(
            {"user_id": user_id}, {"results": 0}
        ).sort("created_at", -1).limit(limit)
        return [SavedReportModel.from_dict(doc) async for doc in cursor]

    async def get_report(self, report_id: str, user_id: Optional[str] = None) -> Optional[SavedReportModel]:
        """Obtiene un reporte (opcionalmente verificando el dueño)"""
        query = {"report_id": report_id}
        if user_id:
            query["user_id"] = user_id
        data = await self.reports_collection.find_one(query)
        if data:
            return SavedReportModel.from_dict(data)
        return None

    async def delete_report(self, report_id: str, user_id: Optional[str] = None) -> bool:
        query = {"report_id": report_id}
        if user_id:
            query["user_id"] = user_id
        result = await self.reports_collection.delete_one(query)
        if result.deleted_count:
            self.logger.info(f"Deleted report {report_id}")
        return result.deleted_count > 0

    # ------------------------------------------------------------------
    # Historial
    # ------------------------------------------------------------------

    async def add_history(self, user_id: str, query: str, result_count: int) -> SearchHistoryEntry:
        entry = SearchHistoryEntry(
            user_id=user_id,
            query=query,
            result_count=result_count,
            created_at=utcnow(),
        )
        await self.history_collection.insert_one(entry.to_dict())
        return entry

    async def list_history(self, user_id: str, limit: int = 50) -> List[SearchHistoryEntry]:
        """Búsquedas del usuario, más recientes primero"""
        cursor = self.history_collection.find({"user_id": user_id}).sort("created_at", -1).limit(limit)
        return [SearchHistoryEntry.from_dict(doc) async for doc in cursor]
