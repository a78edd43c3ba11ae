"""
Servicio de casos de éxito

Convierte un artículo (o la web del caso, vía Firecrawl) en una tarjeta con
título, resumen y pasos clave usando el LLM.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from domain.models import SuccessStoryModel
from domain.prompts import STORY_SYSTEM_PROMPT, STORY_PROMPT_TEMPLATE
from infrastructure.database_manager import DatabaseManager
from infrastructure.errors import LLMError
from infrastructure.firecrawl_client import FirecrawlClient
from infrastructure.llm_client import ILLMClient
from utils.helpers import truncate, utcnow


class StoryService:
    """Generación y administración de casos de éxito"""

    MAX_ARTICLE_CHARS = 15000
    MAX_STEPS = 5

    def __init__(
        self,
        db_manager: DatabaseManager,
        llm_client: Optional[ILLMClient],
        firecrawl_client: Optional[FirecrawlClient] = None
    ):
        self.db_manager = db_manager
        self.stories_collection = db_manager.get_collection("success_stories")
        self.llm = llm_client
        self.firecrawl = firecrawl_client
        self.logger = logging.getLogger(__name__)

    async def _resolve_article(self, article_text: Optional[str], website_url: Optional[str]) -> str:
        if article_text and article_text.strip():
            return article_text.strip()

        if website_url and self.firecrawl is not None:
            pages = await asyncio.to_thread(self.firecrawl.scrape_discussions, [website_url])
            if pages:
                self.logger.info(f"Story article scraped from {website_url}")
                return pages[0]

        raise ValueError("Article text is required")

    async def generate_story(
        self,
        article_text: Optional[str],
        website_url: Optional[str] = None
    ) -> SuccessStoryModel:
        """
        Extrae título, resumen y pasos de un artículo y lo guarda

        Raises:
            ValueError: sin texto de artículo (ni web scrapeable)
            ExternalServiceError: si falla el LLM
        """
        if self.llm is None:
            raise LLMError("OpenAI no está configurado")

        article = await self._resolve_article(article_text, website_url)

        prompt = STORY_PROMPT_TEMPLATE.format(article=truncate(article, self.MAX_ARTICLE_CHARS))
        data = await asyncio.to_thread(self.llm.complete_json, STORY_SYSTEM_PROMPT, prompt)

        now = utcnow()
        story = SuccessStoryModel.from_dict({
            "title": data.get("title") or "",
            "summary": data.get("summary") or "",
            "steps": data.get("steps") or [],
            "article_content": article,
            "website_url": website_url,
        })
        story.steps = story.steps[:self.MAX_STEPS]
        story.created_at = now
        story.updated_at = now

        result = await self.stories_collection.insert_one(story.to_dict())
        story._id = result.inserted_id

        self.logger.info(f"Created success story {story.story_id}: {story.title}")
        return story

    async def list_stories(self) -> List[SuccessStoryModel]:
        """Casos de éxito, más nuevos primero"""
        cursor = self.stories_collection.find({}).sort("created_at", -1)
        return [SuccessStoryModel.from_dict(doc) async for doc in cursor]

    async def get_story(self, story_id: str) -> Optional[SuccessStoryModel]:
        data = await self.stories_collection.find_one({"story_id": story_id})
        if data:
            return SuccessStoryModel.from_dict(data)
        return None

    async def update_story(self, story_id: str, fields: Dict[str, Any]) -> Optional[SuccessStoryModel]:
        """Actualiza los campos editables de un caso (None si no existe)"""
        if not story_id:
            raise ValueError("ID is required")

        updates = {
            key: value for key, value in fields.items()
            if key in SuccessStoryModel.EDITABLE_FIELDS and value is not None
        }
        updates["updated_at"] = utcnow()

        result = await self.stories_collection.update_one({"story_id": story_id}, {"$set": updates})
        if not result.matched_count:
            return None
        return await self.get_story(story_id)

    async def delete_story(self, story_id: str) -> bool:
        if not story_id:
            raise ValueError("ID is required")
        result = await self.stories_collection.delete_one({"story_id": story_id})
        return result.deleted_count > 0
