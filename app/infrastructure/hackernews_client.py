"""
Búsqueda en Hacker News (API pública de Algolia)
Último recurso cuando Reddit no devuelve nada
"""

import logging
from typing import List

import requests

from config.settings import RedditConfig
from domain.models import SearchResult

logger = logging.getLogger(__name__)


class HackerNewsClient:
    """Cliente mínimo sobre hn.algolia.com"""

    def __init__(self, config: RedditConfig):
        self.search_url = config.hn_search_url
        self.timeout_seconds = config.hn_timeout_seconds

    def search_stories(self, query: str, limit: int = 5) -> List[SearchResult]:
        """
        Busca historias de HN

        Raises:
            requests.RequestException: el llamador decide cómo reportarlo
        """
        response = requests.get(
            self.search_url,
            params={"query": query, "tags": "story"},
            timeout=self.timeout_seconds
        )
        response.raise_for_status()
        hits = response.json().get("hits") or []

        results = []
        for hit in hits[:limit]:
            title = hit.get("title") or "HN Discussion"
            results.append(SearchResult(
                url=f"https://news.ycombinator.com/item?id={hit.get('objectID')}",
                title=title,
                content=f"{title}. {hit.get('story_text') or ''}",
                snippet=title,
            ))

        logger.info(f"[HN] Found {len(results)} stories for '{query}'")
        return results
