"""
Pipeline de descubrimiento de puntos de dolor

Camino A (hay Perplexity): una sola investigación web, con heartbeat de progreso.
Camino B (respaldo): plan de queries -> Reddit (+ Firecrawl) -> HN como último
recurso -> extracción de señales -> síntesis y scoring.

Todo se emite como StreamEvent para que el endpoint lo streamee como NDJSON.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

import requests

from config.settings import DiscoveryConfig
from domain.enums import StepStatus
from domain.models import DiscoveryResult, SearchResult, StreamEvent
from infrastructure.firecrawl_client import FirecrawlClient
from infrastructure.hackernews_client import HackerNewsClient
from infrastructure.perplexity_client import IResearchClient
from infrastructure.reddit_client import IRedditClient
from services.analysis_service import AnalysisService


@dataclass
class SubQueryOutcome:
    """Resultado de buscar una de las queries planificadas"""
    query: str
    results: List[SearchResult] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None


def deduplicate_by_url(results: List[SearchResult]) -> List[SearchResult]:
    """Elimina URLs repetidas: gana la última aparición, se mantiene el orden de la primera"""
    unique = {}
    for result in results:
        unique[result.url] = result
    return list(unique.values())


class DiscoveryService:
    """Orquesta la investigación y emite eventos de progreso"""

    def __init__(
        self,
        config: DiscoveryConfig,
        reddit_client: IRedditClient,
        hn_client: HackerNewsClient,
        analysis_service: Optional[AnalysisService] = None,
        research_client: Optional[IResearchClient] = None,
        firecrawl_client: Optional[FirecrawlClient] = None
    ):
        if research_client is None and analysis_service is None:
            raise ValueError("Se requiere un motor de investigación o un servicio de análisis")

        self.config = config
        self.reddit = reddit_client
        self.hn = hn_client
        self.analysis = analysis_service
        self.research_client = research_client
        self.firecrawl = firecrawl_client
        self.logger = logging.getLogger(__name__)

    async def run(self, query: str) -> AsyncIterator[StreamEvent]:
        """
        Ejecuta el pipeline completo para una query

        Cualquier error termina el stream con un único evento de error.
        """
        self.logger.info(f'[Discovery] Received query: "{query}"')
        try:
            if self.research_client is not None:
                pipeline = self._run_research_engine(query)
            else:
                pipeline = self._run_manual_pipeline(query)

            async for event in pipeline:
                yield event

        except Exception as e:
            self.logger.exception(f"[Discovery] Error: {e}")
            yield StreamEvent.failure(f"Failed to process discovery: {e}")

    # ------------------------------------------------------------------
    # Camino A: Perplexity
    # ------------------------------------------------------------------

    async def _run_research_engine(self, query: str) -> AsyncIterator[StreamEvent]:
        yield StreamEvent.progress("Inicializando Motor de Investigación Global...", StepStatus.COMPLETED)

        label = f'Analizando la web en busca de puntos de dolor sobre "{query}"...'
        yield StreamEvent.progress(label, StepStatus.ACTIVE)

        task = asyncio.ensure_future(
            asyncio.to_thread(self.research_client.search_pain_points, query)
        )
        try:
            while True:
                done, _ = await asyncio.wait({task}, timeout=self.config.heartbeat_seconds)
                if done:
                    break
                # Reenviar el paso activo mantiene viva la conexión y la UI
                self.logger.debug("[Discovery] Sending heartbeat...")
                yield StreamEvent.progress(label, StepStatus.ACTIVE)
        finally:
            if not task.done():
                task.cancel()

        data = task.result()
        self.logger.info("[Discovery] Research engine completed successfully")

        yield StreamEvent.progress(label, StepStatus.COMPLETED)
        yield StreamEvent.progress("Análisis completo. Generando reporte...", StepStatus.COMPLETED)
        yield StreamEvent.result(DiscoveryResult.from_dict(data))

    # ------------------------------------------------------------------
    # Camino B: pipeline manual
    # ------------------------------------------------------------------

    async def _run_manual_pipeline(self, query: str) -> AsyncIterator[StreamEvent]:
        strategy_label = f'Generating research strategy for "{query}"...'
        yield StreamEvent.progress(strategy_label, StepStatus.ACTIVE)
        plan = await asyncio.to_thread(self.analysis.plan_research, query)
        self.logger.info(f"[Discovery] Research plan: {plan}")
        yield StreamEvent.progress(strategy_label, StepStatus.COMPLETED)

        yield StreamEvent.progress(f"Searching Reddit for {len(plan)} queries...", StepStatus.COMPLETED)
        search_label = f"Searching parallel ({len(plan)} queries)..."
        yield StreamEvent.progress(search_label, StepStatus.ACTIVE)

        outcomes = await asyncio.gather(
            *(asyncio.to_thread(self._search_sub_query, sub_query) for sub_query in plan)
        )
        yield StreamEvent.progress(search_label, StepStatus.COMPLETED)

        all_results: List[SearchResult] = []
        for outcome in outcomes:
            if outcome.results:
                all_results.extend(outcome.results)
                yield StreamEvent.progress(
                    f'Found {len(outcome.results)} for "{outcome.query}"', StepStatus.COMPLETED
                )

        self.logger.info(f"[Discovery] Total raw results: {len(all_results)}")
        unique_results = deduplicate_by_url(all_results)

        if not unique_results:
            yield StreamEvent.progress("[LAST RESORT] Trying Hacker News search...", StepStatus.ACTIVE)
            try:
                hn_results = await asyncio.to_thread(self.hn.search_stories, query, self.config.hn_limit)
                if hn_results:
                    unique_results.extend(hn_results)
                    yield StreamEvent.progress(
                        f"[LAST RESORT] Found {len(hn_results)} Hacker News discussions.",
                        StepStatus.COMPLETED
                    )
            except (requests.RequestException, ValueError) as e:
                self.logger.error(f"[Discovery] HN fallback failed: {e}")
                yield StreamEvent.progress(f"[LAST RESORT] HN search failed: {e}", StepStatus.ACTIVE)

        if not unique_results:
            yield StreamEvent.failure("No relevant discussions found. Try a broader topic.")
            return

        yield StreamEvent.progress(
            f"Found {len(unique_results)} unique discussion threads", StepStatus.COMPLETED
        )

        corpus = "\n\n".join(
            result.to_source_block(self.config.max_source_chars) for result in unique_results
        )

        extract_label = f"Extracting complaint signals from {len(unique_results)} discussions..."
        yield StreamEvent.progress(extract_label, StepStatus.ACTIVE)
        signals = await asyncio.to_thread(self.analysis.extract_signals, corpus)
        yield StreamEvent.progress(extract_label, StepStatus.COMPLETED)

        analysis_label = f"Analyzing {len(unique_results)} discussions with Market Research Analyst..."
        yield StreamEvent.progress(analysis_label, StepStatus.ACTIVE)
        result = await asyncio.to_thread(self.analysis.synthesize_patterns, signals or corpus)
        yield StreamEvent.progress(analysis_label, StepStatus.COMPLETED)

        yield StreamEvent.progress("Analysis complete. Generating report...", StepStatus.COMPLETED)
        yield StreamEvent.result(result)

    def _search_sub_query(self, sub_query: str) -> SubQueryOutcome:
        """Busca una query en Reddit (y Firecrawl si está configurado)"""
        try:
            reddit_query = sub_query if "reddit" in sub_query.lower() else f"{sub_query} reddit"
            posts = self.reddit.search(reddit_query, self.config.reddit_limit)

            results = []
            for index, post in enumerate(posts):
                content = post.text

                # Comentarios de los primeros posts para tener la discusión completa
                if index < self.config.comment_posts and post.num_comments > 0:
                    comments = self.reddit.get_comments(post.url, self.config.comment_limit)
                    if comments:
                        comment_text = "\n".join(comment.to_line() for comment in comments)
                        content += f"\n\n--- TOP COMMENTS ---\n{comment_text}"

                results.append(SearchResult(
                    url=post.url,
                    title=post.title,
                    content=content,
                    snippet=post.title,
                ))

            if self.firecrawl is not None:
                results.extend(self.firecrawl.search_discussions(sub_query))

            return SubQueryOutcome(query=sub_query, results=results)

        except Exception as e:
            self.logger.error(f'[Discovery] Search failed for "{sub_query}": {e}')
            return SubQueryOutcome(query=sub_query, success=False, error=str(e))
