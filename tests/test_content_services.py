"""
Tests para ReportService, StoryService, CoachService y PrototypeService
"""

import json
import unittest
from unittest.mock import MagicMock

from mongomock_motor import AsyncMongoMockClient

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'app'))

from domain.schemas import CoachMessage, ProblemBrief, SelectedProblem, UserContext
from infrastructure.database_manager import DatabaseManager
from infrastructure.errors import LLMError
from infrastructure.llm_client import MockLLMClient
from services.coach_service import CoachService, SSE_DONE
from services.prototype_service import PrototypeService
from services.report_service import ReportService
from services.story_service import StoryService


def make_db_manager() -> DatabaseManager:
    db_manager = DatabaseManager("mongodb://localhost:27017", "veta_test")
    db_manager.client = AsyncMongoMockClient()
    db_manager.db = db_manager.client["veta_test"]
    return db_manager


def make_offer(title="Auditoría de facturación"):
    return {
        "title": title,
        "ideal_customer": "Estudios contables",
        "painful_problem": "Facturas perdidas",
        "promise_outcome": "Cero facturas perdidas en 30 días",
        "deliverables": ["Diagnóstico", "Automatización"],
        "timeline_weeks": 4,
        "price_usd": {"min": 2000, "max": 5000},
        "roi_rationale": "Recupera 20 horas por mes",
        "differentiation": "Especialistas en LATAM",
        "risk_reversal": "Garantía de 30 días",
        "discovery_questions": ["¿Cuántas facturas emiten?"],
        "outreach_message": "Hola...",
        "next_step_call_to_action": "Agendá una llamada",
    }


SELECTED = SelectedProblem(
    problem_title="Facturas que se pierden",
    core_pain="Se pierden ventas",
    who_has_it="Pymes de servicios",
    market_scope="international_facing",
)


class TestReportService(unittest.IsolatedAsyncioTestCase):
    """Tests de reportes guardados e historial"""

    async def asyncSetUp(self):
        self.service = ReportService(make_db_manager())

    async def test_save_and_get(self):
        results = {"problems": [{"description": "a"}, {"description": "b"}]}
        report = await self.service.save_report("u1", "facturación", results)

        assert report.title == "Análisis: facturación"
        assert report.problem_count == 2
        assert report.report_id.startswith("rep-")

        stored = await self.service.get_report(report.report_id)
        assert len(stored.results["problems"]) == 2

    async def test_list_hides_results_and_filters_user(self):
        await self.service.save_report("u1", "uno", {"problems": []})
        await self.service.save_report("u1", "dos", {"problems": []})
        await self.service.save_report("u2", "otro", {"problems": []})

        reports = await self.service.list_reports("u1")
        assert {r.query for r in reports} == {"uno", "dos"}
        assert all(r.results == {} for r in reports)

    async def test_delete_checks_owner(self):
        report = await self.service.save_report("u1", "uno", {"problems": []})
        assert await self.service.delete_report(report.report_id, user_id="u2") is False
        assert await self.service.delete_report(report.report_id, user_id="u1") is True
        assert await self.service.get_report(report.report_id) is None

    async def test_save_requires_query(self):
        with self.assertRaises(ValueError):
            await self.service.save_report("u1", "", {})

    async def test_results_stored_as_given(self):
        results = {"problems": [{
            "description": "d",
            "persona": "Contadores",
            "mvpIdeas": ["idea"],
            "urgencySignals": "urgente",
            "existingSolutions": [{"name": "Xero", "complaint": "caro"}],
        }]}
        report = await self.service.save_report("u1", "q", results)
        assert report.problem_count == 1

        stored = await self.service.get_report(report.report_id)
        assert stored.results == results

    async def test_save_requires_problem_list(self):
        with self.assertRaises(ValueError):
            await self.service.save_report("u1", "q", {"problems": "ninguno"})

    async def test_history(self):
        await self.service.add_history("u1", "crm", 3)
        await self.service.add_history("u2", "erp", 1)

        entries = await self.service.list_history("u1")
        assert [(e.query, e.result_count) for e in entries] == [("crm", 3)]


class TestStoryService(unittest.IsolatedAsyncioTestCase):
    """Tests de casos de éxito"""

    async def asyncSetUp(self):
        self.db_manager = make_db_manager()

    async def test_generate_story(self):
        llm = MockLLMClient(responses=[{
            "title": "De freelancer a agencia",
            "summary": "Resumen.",
            "steps": ["1", "2", "3", "4", "5", "6"],
        }])
        service = StoryService(self.db_manager, llm)

        story = await service.generate_story("Texto del artículo", "https://caso.com")
        assert story.title == "De freelancer a agencia"
        assert len(story.steps) == 5
        assert '"Texto del artículo"' in llm.calls[0]["user"]

        stories = await service.list_stories()
        assert [s.story_id for s in stories] == [story.story_id]

    async def test_scrapes_website_when_no_text(self):
        firecrawl = MagicMock()
        firecrawl.scrape_discussions.return_value = ["# Caso scrapeado"]
        llm = MockLLMClient(responses=[{"title": "T", "summary": "S", "steps": []}])
        service = StoryService(self.db_manager, llm, firecrawl)

        story = await service.generate_story(None, "https://caso.com")
        firecrawl.scrape_discussions.assert_called_once_with(["https://caso.com"])
        assert story.article_content == "# Caso scrapeado"

    async def test_requires_article(self):
        service = StoryService(self.db_manager, MockLLMClient())
        with self.assertRaises(ValueError):
            await service.generate_story("   ", None)

    async def test_update_and_delete(self):
        llm = MockLLMClient(responses=[{"title": "T", "summary": "S", "steps": ["a"]}])
        service = StoryService(self.db_manager, llm)
        story = await service.generate_story("texto")

        updated = await service.update_story(story.story_id, {"revenue": "$10k/mes", "story_id": "hack"})
        assert updated.revenue == "$10k/mes"
        assert updated.story_id == story.story_id

        assert await service.update_story("no-existe", {"title": "x"}) is None
        assert await service.delete_story(story.story_id) is True
        assert await service.delete_story(story.story_id) is False


class TestCoachService(unittest.TestCase):
    """Tests del coach"""

    def test_stream_chat_sse_lines(self):
        llm = MockLLMClient(chunks=["Hola", " crack"])
        service = CoachService(llm, model="gpt-4o-mini")

        lines = list(service.stream_chat([CoachMessage(role="user", content="¿Qué hago?")], SELECTED))

        assert lines == [
            'data: {"content": "Hola"}\n\n',
            'data: {"content": " crack"}\n\n',
            SSE_DONE,
        ]
        messages = llm.calls[0]["messages"]
        assert messages[0]["role"] == "system"
        assert "Título: Facturas que se pierden" in messages[0]["content"]
        assert "international_facing" in messages[0]["content"]
        assert messages[1] == {"role": "user", "content": "¿Qué hago?"}
        assert llm.calls[0]["model"] == "gpt-4o-mini"

    def test_stream_error_stops_without_done(self):
        class FailingLLM(MockLLMClient):
            def stream_chat(self, messages, model=None, temperature=None):
                yield "Hola"
                raise LLMError("stream cortado")

        lines = list(CoachService(FailingLLM()).stream_chat([], SELECTED))
        assert json.loads(lines[-1][len("data: "):]) == {"error": "stream cortado"}
        assert SSE_DONE not in lines

    def test_generate_offers(self):
        llm = MockLLMClient(responses=[{
            "country": "AR",
            "offers": [make_offer(), make_offer("Implementación DFY")],
            "recommended_best_offer_index": 7,
            "quick_pitch": "Pitch",
            "positioning_statement": "Posicionamiento",
            "seven_day_validation_plan": ["Día 1"],
        }])
        bundle = CoachService(llm).generate_offers(SELECTED, UserContext(country="AR"))

        assert len(bundle.offers) == 2
        assert bundle.recommended_best_offer_index == 0
        assert "Market Scope: international_facing" in llm.calls[0]["user"]

    def test_invalid_bundle_raises(self):
        llm = MockLLMClient(responses=[{"offers": []}])
        with self.assertRaises(LLMError):
            CoachService(llm).generate_offers(SELECTED)


class TestPrototypeService(unittest.TestCase):
    """Tests del generador de prompts"""

    def test_generate_prompts(self):
        llm = MockLLMClient(responses=[{"lovable": "L", "bolt": "B"}])
        brief = ProblemBrief(
            description="Facturas perdidas",
            persona="Contadores",
            mvpIdeas=["Bot de WhatsApp", "Dashboard", "App móvil"],
            existingSolutions=[{"name": "Excel", "complaint": "manual"}],
        )

        prompts = PrototypeService(llm).generate_prompts(brief)
        assert prompts == {"lovable": "L", "bolt": "B", "antigravity": ""}

        user_prompt = llm.calls[0]["user"]
        assert "TARGET USER:\nContadores" in user_prompt
        assert "MVP IDEAS TO CONSIDER: Bot de WhatsApp; Dashboard" in user_prompt
        assert "App móvil" not in user_prompt
        assert "CURRENT SOLUTIONS THEY HATE: Excel: manual" in user_prompt
        assert "URGENCY SIGNALS" not in user_prompt

    def test_description_required(self):
        with self.assertRaises(ValueError):
            PrototypeService(MockLLMClient()).generate_prompts(ProblemBrief(description=" "))


if __name__ == '__main__':
    unittest.main()
