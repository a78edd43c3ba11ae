"""
API REST principal usando FastAPI
"""

from fastapi import FastAPI, HTTPException, Depends, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from typing import List, Optional, Dict, Any
from datetime import datetime
import asyncio
import hmac
import logging
from pydantic import BaseModel, Field
from pymongo.errors import PyMongoError

from domain.enums import PaywallType, PlanType, StreamEventType
from domain.models import DiscoveryResult, StreamEvent
from domain.plans import PLANS, apply_pain_point_limit
from domain.schemas import CoachMessage, ProblemBrief, SelectedProblem, UserContext
from infrastructure.database_manager import DatabaseManager
from infrastructure.errors import ExternalServiceError
from infrastructure.firecrawl_client import FirecrawlClient
from infrastructure.hackernews_client import HackerNewsClient
from infrastructure.llm_client import OpenAILLMClient
from infrastructure.mercadopago_client import MercadoPagoClient
from infrastructure.perplexity_client import PerplexityClient
from infrastructure.reddit_client import RedditClient
from services import (
    AnalysisService, DiscoveryService, SubscriptionService, UsageService,
    PaymentService, WorkshopService, ReportService, StoryService,
    CoachService, PrototypeService, AdminService
)
from config.settings import get_settings, mask_secret
from utils import analytics
from utils.helpers import serialize_objectid

# ============================================================================
# REQUEST MODELS (Pydantic)
# ============================================================================

class DiscoverRequest(BaseModel):
    query: str = ""
    user_id: Optional[str] = None  # Anónimo = límites del plan free

class CoachChatRequest(BaseModel):
    messages: List[CoachMessage] = Field(default_factory=list)
    selectedProblem: SelectedProblem
    userContext: Optional[UserContext] = None

class CoachOffersRequest(BaseModel):
    selectedProblem: SelectedProblem
    userContext: Optional[UserContext] = None

class InitSubscriptionRequest(BaseModel):
    user_id: str = ""
    email: Optional[str] = None

class CheckoutRequest(BaseModel):
    user_id: str = ""
    email: str = ""
    plan: str = "pro"  # "pro" o "advanced"

class WorkshopCheckoutRequest(BaseModel):
    user_id: str = ""
    email: str = ""

class SaveReportRequest(BaseModel):
    user_id: str
    query: str
    results: Dict[str, Any]

class GenerateStoryRequest(BaseModel):
    article_text: Optional[str] = None
    website_url: Optional[str] = None

class UpdateStoryRequest(BaseModel):
    title: Optional[str] = None
    revenue: Optional[str] = None
    summary: Optional[str] = None
    steps: Optional[List[str]] = None
    website_url: Optional[str] = None
    article_content: Optional[str] = None

class WorkshopRegisterRequest(BaseModel):
    full_name: str = ""
    email: str = ""
    mobile: str = ""

class AdminActionRequest(BaseModel):
    action: str
    user_id: str
    email: Optional[str] = None

# ============================================================================
# CONFIGURACIÓN Y STARTUP
# ============================================================================

settings = get_settings()

# Configurar logging
logging.basicConfig(
    level=settings.logging.level,
    format=settings.logging.format
)
for noisy_logger in ("pymongo", "urllib3", "httpx", "openai"):
    logging.getLogger(noisy_logger).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

# Crear app FastAPI
app = FastAPI(
    title="Veta API",
    description="Descubrimiento de puntos de dolor validados con IA, suscripciones y pagos",
    version="1.0.0"
)

# Configurar CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Dependencias globales
db_manager = None
discovery_service = None
subscription_service = None
usage_service = None
payment_service = None
workshop_service = None
report_service = None
story_service = None
coach_service = None
prototype_service = None
admin_service = None

@app.on_event("startup")
async def startup_event():
    """Inicializar servicios al arrancar la API"""
    global db_manager, discovery_service, subscription_service, usage_service, payment_service
    global workshop_service, report_service, story_service, coach_service, prototype_service, admin_service

    db_manager = DatabaseManager(
        settings.database.uri, settings.database.database, settings.database.max_pool_size
    )
    await db_manager.connect()
    await db_manager.ensure_indexes()

    logger.info(f"OpenAI key: {mask_secret(settings.openai.api_key)}")
    logger.info(f"Perplexity key: {mask_secret(settings.perplexity.api_key)}")
    logger.info(f"Firecrawl key: {mask_secret(settings.firecrawl.api_key)}")

    # Los proveedores opcionales quedan en None si no hay credenciales
    llm_client = OpenAILLMClient(settings.openai) if settings.openai.api_key else None
    research_client = PerplexityClient(settings.perplexity) if settings.perplexity.api_key else None
    firecrawl_client = FirecrawlClient(settings.firecrawl) if settings.firecrawl.api_key else None
    payment_client = (
        MercadoPagoClient(settings.mercadopago) if settings.mercadopago.access_token else None
    )

    discovery_service = DiscoveryService(
        settings.discovery,
        RedditClient(settings.reddit),
        HackerNewsClient(settings.reddit),
        analysis_service=AnalysisService(llm_client) if llm_client else None,
        research_client=research_client,
        firecrawl_client=firecrawl_client
    )

    subscription_service = SubscriptionService(db_manager)
    usage_service = UsageService(db_manager, subscription_service)
    workshop_service = WorkshopService(db_manager)
    report_service = ReportService(db_manager)
    admin_service = AdminService(subscription_service, usage_service)

    if payment_client:
        payment_service = PaymentService(
            db_manager, payment_client, subscription_service, workshop_service, settings.app
        )

    # La lectura de casos de éxito no necesita LLM
    story_service = StoryService(db_manager, llm_client, firecrawl_client)

    if llm_client:
        coach_service = CoachService(llm_client, model=settings.openai.coach_model)
        prototype_service = PrototypeService(llm_client)

    mode = "Perplexity" if research_client else "Reddit + OpenAI"
    logger.info(f"API initialized successfully (discovery: {mode})")

@app.on_event("shutdown")
async def shutdown_event():
    """Cerrar conexiones al apagar la API"""
    if db_manager:
        await db_manager.close()
    logger.info("API shutdown completed")

def _require(service, name: str):
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} no está configurado")
    return service

# Dependencias para inyectar servicios
async def get_discovery_service() -> DiscoveryService:
    return _require(discovery_service, "Discovery")

async def get_subscription_service() -> SubscriptionService:
    return _require(subscription_service, "Subscriptions")

async def get_usage_service() -> UsageService:
    return _require(usage_service, "Usage")

async def get_payment_service() -> PaymentService:
    return _require(payment_service, "MercadoPago")

async def get_workshop_service() -> WorkshopService:
    return _require(workshop_service, "Workshop")

async def get_report_service() -> ReportService:
    return _require(report_service, "Reports")

async def get_story_service() -> StoryService:
    return _require(story_service, "Stories")

async def get_story_generator() -> StoryService:
    """Casos de éxito con LLM disponible (solo para generar)"""
    service = _require(story_service, "Stories")
    return _require(service if service.llm else None, "OpenAI")

async def get_coach_service() -> CoachService:
    return _require(coach_service, "OpenAI")

async def get_prototype_service() -> PrototypeService:
    return _require(prototype_service, "OpenAI")

async def get_admin_service() -> AdminService:
    return _require(admin_service, "Admin")

async def verify_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    """Valida la API key de administración (header X-Admin-Key)"""
    if not x_admin_key:
        raise HTTPException(status_code=401, detail="Unauthorized")
    expected = settings.app.admin_api_key
    if not expected or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Admin access required")


# ============================================================================
# ENDPOINTS - HEALTH CHECK
# ============================================================================

@app.get("/")
async def root():
    """Endpoint raíz"""
    return {
        "message": "Veta API",
        "version": "1.0.0",
        "status": "active"
    }

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    healthy = bool(db_manager) and await db_manager.health_check()
    if healthy:
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "database": "connected"
        }
    return JSONResponse(
        status_code=503,
        content={
            "status": "unhealthy",
            "database": "disconnected",
            "timestamp": datetime.utcnow().isoformat()
        }
    )


# ============================================================================
# ENDPOINTS - DISCOVERY
# ============================================================================

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

@app.post("/api/discover")
async def discover(
    request: DiscoverRequest,
    service: DiscoveryService = Depends(get_discovery_service),
    usage: UsageService = Depends(get_usage_service),
    reports: ReportService = Depends(get_report_service)
):
    """Pipeline de descubrimiento, streameado como NDJSON"""
    query = request.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Query is required")

    plan_type = PlanType.FREE
    if request.user_id:
        status = await usage.get_usage_status(request.user_id)
        plan_type = PlanType.parse(status["plan_type"])
        if not status["can_search"]:
            analytics.paywall_viewed(PaywallType.LIMIT_REACHED, request.user_id)
            raise HTTPException(
                status_code=402,
                detail=f"Scan limit reached for plan {plan_type.value}"
            )

    async def event_stream():
        async for event in service.run(query):
            if event.type == StreamEventType.RESULT:
                result = apply_pain_point_limit(DiscoveryResult.from_dict(event.data), plan_type)
                event = StreamEvent.result(result)

                if request.user_id:
                    try:
                        await usage.record_scan(request.user_id)
                        await reports.add_history(request.user_id, query, result.problem_count)
                    except PyMongoError as e:
                        logger.error(f"Error metering scan for {request.user_id}: {e}")

                if plan_type == PlanType.FREE:
                    analytics.search_completed_free(query, result.problem_count)

            yield event.to_line()

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=STREAM_HEADERS)


# ============================================================================
# ENDPOINTS - HERRAMIENTAS IA (prompts de prototipo y coach)
# ============================================================================

@app.post("/api/generate-prompts")
async def generate_prompts(
    request: ProblemBrief,
    service: PrototypeService = Depends(get_prototype_service)
):
    """Genera prompts para Lovable, Bolt.new y Antigravity"""
    try:
        prompts = await asyncio.to_thread(service.generate_prompts, request)
        return {"success": True, "prompts": prompts}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExternalServiceError as e:
        logger.error(f"[generate-prompts] Error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to generate prompts: {e}")

@app.post("/api/coach/chat")
async def coach_chat(
    request: CoachChatRequest,
    service: CoachService = Depends(get_coach_service)
):
    """Chat con Veta Coach (Server-Sent Events)"""
    stream = service.stream_chat(request.messages, request.selectedProblem, request.userContext)
    return StreamingResponse(stream, media_type="text/event-stream", headers=STREAM_HEADERS)

@app.post("/api/coach/offers")
async def coach_offers(
    request: CoachOffersRequest,
    service: CoachService = Depends(get_coach_service)
):
    """Genera el OfferBundle de ofertas high-ticket"""
    try:
        bundle = await asyncio.to_thread(
            service.generate_offers, request.selectedProblem, request.userContext
        )
        return bundle.model_dump()
    except ExternalServiceError as e:
        logger.error(f"Offers API Error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# ENDPOINTS - SUSCRIPCIONES Y PLANES
# ============================================================================

@app.post("/api/init-subscription")
async def init_subscription(
    request: InitSubscriptionRequest,
    service: SubscriptionService = Depends(get_subscription_service)
):
    """Crea la suscripción free de un usuario nuevo"""
    try:
        created = await service.init_subscription(request.user_id, request.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not created:
        return {"message": "Subscription already exists"}
    return {"success": True, "plan": PlanType.FREE.value}

@app.get("/api/subscription/{user_id}")
async def get_subscription(
    user_id: str,
    lang: str = Query("en"),
    service: SubscriptionService = Depends(get_subscription_service),
    usage: UsageService = Depends(get_usage_service)
):
    """Suscripción y estado de uso de un usuario"""
    subscription = await service.get_subscription(user_id)
    status = await usage.get_usage_status(user_id, lang=lang)
    return serialize_objectid({
        "subscription": subscription.to_dict() if subscription else None,
        "usage": status
    })

@app.get("/api/plans")
async def list_plans(lang: str = Query("es")):
    """Catálogo de planes"""
    return {"plans": [plan.to_dict(lang) for plan in PLANS.values()]}


# ============================================================================
# ENDPOINTS - PAGOS (MercadoPago)
# ============================================================================

@app.post("/api/create-subscription")
async def create_subscription(
    request: CheckoutRequest,
    service: PaymentService = Depends(get_payment_service)
):
    """Crea el checkout para un plan pago"""
    if request.plan not in (PlanType.PRO.value, PlanType.ADVANCED.value):
        raise HTTPException(status_code=400, detail=f"Invalid plan: {request.plan}")

    analytics.upgrade_clicked(source=request.plan, user_id=request.user_id)
    try:
        return await service.create_checkout(request.user_id, request.email, request.plan)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExternalServiceError as e:
        logger.error(f"MercadoPago API Error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/api/create-workshop-payment")
async def create_workshop_payment(
    request: WorkshopCheckoutRequest,
    service: PaymentService = Depends(get_payment_service)
):
    """Crea el checkout del workshop"""
    try:
        return await service.create_checkout(request.user_id, request.email, "workshop")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExternalServiceError as e:
        logger.error(f"MercadoPago API Error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/api/webhook/mercadopago")
async def mercadopago_webhook(
    request: Request,
    service: PaymentService = Depends(get_payment_service)
):
    """Notificaciones de pago de MercadoPago"""
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    # MercadoPago también puede notificar solo por query string
    if not body.get("type") and not body.get("topic"):
        params = request.query_params
        body = {
            "type": params.get("type") or params.get("topic"),
            "data": {"id": params.get("data.id") or params.get("id")},
        }

    logger.info(f"MercadoPago Webhook received: {body}")
    try:
        return await service.handle_notification(body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (ExternalServiceError, PyMongoError) as e:
        logger.error(f"Webhook processing error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# ENDPOINTS - REPORTES E HISTORIAL
# ============================================================================

@app.post("/api/reports")
async def save_report(
    request: SaveReportRequest,
    service: ReportService = Depends(get_report_service)
):
    """Guarda un reporte de descubrimiento"""
    try:
        report = await service.save_report(request.user_id, request.query, request.results)
        return {"success": True, "report": serialize_objectid(report.to_summary_dict())}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.get("/api/reports")
async def list_reports(
    user_id: str = Query(...),
    limit: int = Query(50, ge=1, le=200),
    service: ReportService = Depends(get_report_service)
):
    """Reportes de un usuario (sin resultados)"""
    reports = await service.list_reports(user_id, limit)
    return serialize_objectid([report.to_summary_dict() for report in reports])

@app.get("/api/reports/{report_id}")
async def get_report(
    report_id: str,
    user_id: Optional[str] = Query(None),
    service: ReportService = Depends(get_report_service)
):
    """Reporte completo"""
    report = await service.get_report(report_id, user_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return serialize_objectid(report.to_dict())

@app.delete("/api/reports/{report_id}")
async def delete_report(
    report_id: str,
    user_id: Optional[str] = Query(None),
    service: ReportService = Depends(get_report_service)
):
    """Elimina un reporte"""
    deleted = await service.delete_report(report_id, user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Report not found")
    return {"success": True}

@app.get("/api/history/{user_id}")
async def get_history(
    user_id: str,
    limit: int = Query(50, ge=1, le=200),
    service: ReportService = Depends(get_report_service)
):
    """Historial de búsquedas del usuario"""
    entries = await service.list_history(user_id, limit)
    return serialize_objectid([entry.to_dict() for entry in entries])


# ============================================================================
# ENDPOINTS - CASOS DE ÉXITO
# ============================================================================

@app.get("/api/stories")
async def list_stories(service: StoryService = Depends(get_story_service)):
    """Casos de éxito, más nuevos primero"""
    stories = await service.list_stories()
    return {"success": True, "data": serialize_objectid([story.to_dict() for story in stories])}

@app.get("/api/stories/{story_id}")
async def get_story(story_id: str, service: StoryService = Depends(get_story_service)):
    story = await service.get_story(story_id)
    if not story:
        raise HTTPException(status_code=404, detail="Story not found")
    return {"success": True, "data": serialize_objectid(story.to_dict())}

@app.post("/api/stories/generate", dependencies=[Depends(verify_admin)])
async def generate_story(
    request: GenerateStoryRequest,
    service: StoryService = Depends(get_story_generator)
):
    """Genera y guarda un caso de éxito a partir de un artículo"""
    try:
        story = await service.generate_story(request.article_text, request.website_url)
        return {"success": True, "data": serialize_objectid(story.to_dict())}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExternalServiceError as e:
        logger.error(f"Generate Story Error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@app.put("/api/stories/{story_id}", dependencies=[Depends(verify_admin)])
async def update_story(
    story_id: str,
    request: UpdateStoryRequest,
    service: StoryService = Depends(get_story_service)
):
    story = await service.update_story(story_id, request.model_dump(exclude_none=True))
    if not story:
        raise HTTPException(status_code=404, detail="Story not found")
    return {"success": True, "data": serialize_objectid(story.to_dict())}

@app.delete("/api/stories/{story_id}", dependencies=[Depends(verify_admin)])
async def delete_story(story_id: str, service: StoryService = Depends(get_story_service)):
    deleted = await service.delete_story(story_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Story not found")
    return {"success": True}


# ============================================================================
# ENDPOINTS - WORKSHOP
# ============================================================================

@app.post("/api/workshop/register")
async def register_workshop(
    request: WorkshopRegisterRequest,
    service: WorkshopService = Depends(get_workshop_service)
):
    """Inscripción al workshop en vivo"""
    try:
        registration = await service.register(request.full_name, request.email, request.mobile)
        return {"success": True, "data": serialize_objectid(registration.to_dict())}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ============================================================================
# ENDPOINTS - ADMIN
# ============================================================================

@app.get("/api/admin/users", dependencies=[Depends(verify_admin)])
async def admin_list_users(service: AdminService = Depends(get_admin_service)):
    """Usuarios con plan y uso del mes, más estadísticas"""
    return serialize_objectid(await service.list_users())

@app.post("/api/admin/users", dependencies=[Depends(verify_admin)])
async def admin_user_action(
    request: AdminActionRequest,
    service: AdminService = Depends(get_admin_service)
):
    """Acciones manuales: grant_pro / revoke_pro"""
    try:
        return await service.perform_action(request.action, request.user_id, request.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
