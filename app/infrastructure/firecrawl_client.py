"""
Cliente para la API REST de Firecrawl (búsqueda + scraping a markdown)
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

import requests
from tenacity import retry, retry_if_exception_type, wait_exponential_jitter, stop_after_attempt

from config.settings import FirecrawlConfig, mask_secret
from domain.models import SearchResult
from infrastructure.errors import FirecrawlError

logger = logging.getLogger(__name__)


class FirecrawlClient:
    """
    Búsqueda de discusiones con Firecrawl

    Estrategia 1: Search API con la palabra "reddit" (más amplio que site:)
    Estrategia 2: scrape directo de la página de búsqueda de Reddit
    """

    SEARCH_LIMIT = 5
    SNIPPET_CHARS = 500

    def __init__(self, config: FirecrawlConfig):
        self.config = config
        self.base_url = config.base_url.rstrip("/")

        if not config.api_key:
            raise ValueError("FIRECRAWL_API_KEY es requerida")

        logger.info(f"[Firecrawl] API Key status: SET ({mask_secret(config.api_key)})")

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    @retry(
        retry=retry_if_exception_type(requests.ConnectionError),
        wait=wait_exponential_jitter(initial=1, max=10),
        stop=stop_after_attempt(3),
        reraise=True
    )
    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = requests.post(
            f"{self.base_url}{path}",
            headers=self._get_headers(),
            json=payload,
            timeout=self.config.timeout_seconds
        )
        if not response.ok:
            raise FirecrawlError(
                f"Firecrawl {path} error ({response.status_code}): {response.text[:300]}",
                status_code=response.status_code
            )
        return response.json()

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> List[SearchResult]:
        """Search API de Firecrawl con scraping a markdown"""
        data = self._post("/v1/search", {
            "query": query,
            "limit": limit,
            "scrapeOptions": {"formats": ["markdown"]},
        })
        results = []
        for item in data.get("data") or []:
            content = item.get("markdown") or item.get("content") or item.get("description") or ""
            results.append(SearchResult(
                url=item.get("url", ""),
                title=item.get("title") or "Discussion",
                content=content,
                snippet=content[:self.SNIPPET_CHARS],
            ))
        return results

    def scrape(self, url: str) -> Optional[str]:
        """Scrapea una URL y devuelve su markdown (None si no hay contenido)"""
        data = self._post("/v1/scrape", {"url": url, "formats": ["markdown"]})
        if not data.get("success"):
            return None
        return (data.get("data") or {}).get("markdown")

    def search_discussions(self, query: str) -> List[SearchResult]:
        """
        Busca discusiones sobre un tema (nunca lanza excepciones)

        Returns:
            Resultados de la Search API, o la página de búsqueda de Reddit
            scrapeada como único resultado, o lista vacía
        """
        logger.info(f'[Firecrawl] Searching for: "{query}"')

        try:
            results = self.search(f"{query} reddit")
            if results:
                logger.info(f"[Firecrawl] Search API found {len(results)} results.")
                return results
        except (FirecrawlError, requests.RequestException, ValueError) as e:
            logger.error(f"[Firecrawl] Search API failed: {e}. Trying fallback...")

        reddit_url = f"https://www.reddit.com/search/?q={quote_plus(query)}&type=link"
        try:
            markdown = self.scrape(reddit_url)
            if markdown:
                logger.info("[Firecrawl] Fallback Scrape Successful")
                return [SearchResult(
                    url=reddit_url,
                    title="Reddit Search Results (Fallback)",
                    content=markdown,
                    snippet=markdown[:self.SNIPPET_CHARS],
                )]
        except (FirecrawlError, requests.RequestException, ValueError) as e:
            logger.error(f"[Firecrawl] Fallback failed: {e}")

        return []

    def scrape_discussions(self, urls: List[str]) -> List[str]:
        """Scrapea varias URLs y devuelve el markdown de las exitosas"""
        pages = []
        for url in urls:
            try:
                markdown = self.scrape(url)
            except (FirecrawlError, requests.RequestException, ValueError) as e:
                logger.error(f"[Firecrawl] Scrape error for {url}: {e}")
                continue
            if markdown:
                pages.append(markdown)
        return pages
