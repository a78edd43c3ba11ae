"""
Acceso directo a Reddit via sus endpoints JSON públicos
No requiere API key: alcanza con agregar .json a las URLs de Reddit
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests
from tenacity import retry, retry_if_exception_type, wait_exponential_jitter, stop_after_attempt

from config.settings import RedditConfig
from domain.models import RedditPost, RedditComment

logger = logging.getLogger(__name__)


class IRedditClient(ABC):
    """Interface para búsqueda de discusiones en Reddit"""

    @abstractmethod
    def search(self, query: str, limit: int = 10) -> List[RedditPost]:
        """Busca posts por relevancia"""
        pass

    @abstractmethod
    def get_comments(self, post_url: str, limit: int = 20) -> List[RedditComment]:
        """Obtiene comentarios de primer nivel de un post"""
        pass


class RedditClient(IRedditClient):
    """
    Cliente sobre reddit.com/search.json y <post>.json
    Nunca lanza excepciones: ante cualquier error devuelve lista vacía
    """

    BASE_URL = "https://www.reddit.com"

    def __init__(self, config: RedditConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        # Reddit bloquea requests sin User-Agent
        self.session.headers.update({"User-Agent": config.user_agent})

    @retry(
        retry=retry_if_exception_type(requests.ConnectionError),
        wait=wait_exponential_jitter(initial=1, max=8),
        stop=stop_after_attempt(3),
        reraise=True
    )
    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        response = self.session.get(url, params=params, timeout=self.config.timeout_seconds)
        if not response.ok:
            logger.error(f"[Reddit] HTTP Error: {response.status_code} ({url})")
            return None
        return response.json()

    def search(self, query: str, limit: int = 10) -> List[RedditPost]:
        """
        Busca en Reddit usando el endpoint JSON público

        Args:
            query: Término de búsqueda
            limit: Máximo de resultados

        Returns:
            Lista de RedditPost (vacía ante errores)
        """
        logger.info(f'[Reddit] Searching: "{query}"')
        params = {"q": query, "sort": "relevance", "limit": limit, "type": "link"}

        try:
            data = self._get_json(f"{self.BASE_URL}/search.json", params=params)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[Reddit] Search error: {e}")
            return []

        children = (data or {}).get("data", {}).get("children") if isinstance(data, dict) else None
        if not children:
            logger.warning("[Reddit] No results structure found")
            return []

        posts = [RedditPost.from_listing_child(child) for child in children]
        logger.info(f"[Reddit] Found {len(posts)} posts")
        return posts

    def get_comments(self, post_url: str, limit: int = 20) -> List[RedditComment]:
        """
        Obtiene los comentarios de un post

        Reddit devuelve [post, comments]; solo se toman los de tipo t1 (comentario)
        """
        json_url = post_url.rstrip("/") + ".json"
        logger.debug(f"[Reddit] Fetching comments from: {json_url}")

        try:
            data = self._get_json(json_url, params={"limit": limit})
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[Reddit] Comments error: {e}")
            return []

        if not isinstance(data, list) or len(data) < 2:
            return []

        children = data[1].get("data", {}).get("children", [])
        comments = []
        for child in children:
            if child.get("kind") != "t1":
                continue
            comment = child.get("data", {})
            comments.append(RedditComment(
                body=comment.get("body", ""),
                author=comment.get("author", "[deleted]"),
                score=comment.get("score", 0) or 0,
            ))
        return comments


class MockRedditClient(IRedditClient):
    """Cliente mock para testing: posts y comentarios por query/url"""

    def __init__(
        self,
        posts_by_query: Optional[Dict[str, List[RedditPost]]] = None,
        comments_by_url: Optional[Dict[str, List[RedditComment]]] = None,
        failing_queries: Optional[List[str]] = None
    ):
        self.posts_by_query = posts_by_query or {}
        self.comments_by_url = comments_by_url or {}
        self.failing_queries = set(failing_queries or [])
        self.searched: List[str] = []
        self.comment_requests: List[str] = []

    def search(self, query: str, limit: int = 10) -> List[RedditPost]:
        self.searched.append(query)
        if query in self.failing_queries:
            raise RuntimeError(f"Reddit caído para {query}")
        return self.posts_by_query.get(query, [])[:limit]

    def get_comments(self, post_url: str, limit: int = 20) -> List[RedditComment]:
        self.comment_requests.append(post_url)
        return self.comments_by_url.get(post_url, [])[:limit]
