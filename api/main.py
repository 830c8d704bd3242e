"""FastAPI server for the ASVS L1 compliance tracker."""

import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from asvstrack.aggregation import LevelPolicy
from asvstrack.errors import NotFoundError, TransientIOError, ValidationError
from asvstrack.persistence import RequirementStore, create_store
from asvstrack.registry import RequirementRegistry
from asvstrack.reporting import (
    build_pdf,
    dashboard_payload,
    filter_sections,
    load_dashboard,
    render_markdown,
    report_filename,
)
from asvstrack.search import INSUFFICIENT_INPUT, filter_requirements
from asvstrack.supabase_client import resolve_user_id
from asvstrack.tracing.logger import log_activity
from config.settings import settings

from api.schemas import (
    DBStatusResponse,
    ExportFormatEnum,
    FieldUpdate,
    FieldUpdateResponse,
    RequirementBatch,
    RequirementResponse,
    SearchResponse,
    SearchResultSchema,
    SearchStatusEnum,
    SectionCreate,
    SectionRequirementsResponse,
    SectionResponse,
    StatsResponse,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="ASVS Track API",
    description="OWASP ASVS Level 1 compliance tracking",
    version="0.1.0",
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global state
store: RequirementStore | None = None
level_policy: LevelPolicy | None = None


# ============ Dependencies ============

async def get_store() -> RequirementStore:
    """Get or create the global store for the configured backend."""
    global store
    if store is None:
        try:
            store = await create_store()
        except RuntimeError as e:
            raise HTTPException(status_code=500, detail=str(e))
    return store


def get_registry(store: RequirementStore = Depends(get_store)) -> RequirementRegistry:
    return RequirementRegistry(
        store,
        search_limit=settings.search_limit,
        min_query_chars=settings.search_min_chars,
    )


def get_level_policy() -> LevelPolicy:
    """Get or create the level policy from settings."""
    global level_policy
    if level_policy is None:
        level_policy = LevelPolicy.from_settings()
    return level_policy


async def get_current_user(authorization: str | None = Header(default=None)) -> str:
    """Resolve the bearer token of the request to a user id."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = authorization[len("bearer "):].strip()
    try:
        user_id = await resolve_user_id(token)
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user_id


def _trace(event_type: str, message: str, data: dict | None = None) -> None:
    if settings.tracing_enabled:
        log_activity(event_type, "api", message, data)


# ============ Error Mapping ============

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(TransientIOError)
async def transient_error_handler(request: Request, exc: TransientIOError):
    logger.warning("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


# ============ Health ============

@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "asvstrack", "version": "0.1.0"}


@app.get("/api/db/status", response_model=DBStatusResponse)
async def db_status(store: RequirementStore = Depends(get_store)):
    """Check whether the store can be read."""
    try:
        connected = await store.ping()
    except TransientIOError as e:
        return DBStatusResponse(
            backend=settings.store_backend,
            connected=False,
            details={"error": str(e)},
        )
    return DBStatusResponse(backend=settings.store_backend, connected=connected)


# ============ Sections ============

@app.get("/api/sections", response_model=list[SectionResponse])
async def list_sections(registry: RequirementRegistry = Depends(get_registry)):
    """List sections in display order."""
    return [SectionResponse.from_section(s) for s in await registry.list_sections()]


@app.post("/api/sections", response_model=SectionResponse, status_code=201)
async def create_section(
    body: SectionCreate,
    registry: RequirementRegistry = Depends(get_registry),
    user_id: str = Depends(get_current_user),
):
    """Create a section."""
    section = await registry.create_section(body.name, body.slug, body.order_index)
    _trace("section_created", f"Section '{section.slug}' created", {"user_id": user_id})
    return SectionResponse.from_section(section)


@app.get("/api/sections/{slug}", response_model=SectionResponse)
async def get_section(slug: str, registry: RequirementRegistry = Depends(get_registry)):
    """Get a section by slug."""
    return SectionResponse.from_section(await registry.get_section_by_slug(slug))


# ============ Requirements ============

@app.get("/api/sections/{slug}/requirements", response_model=SectionRequirementsResponse)
async def list_section_requirements(
    slug: str,
    q: str | None = Query(default=None, description="Filter on requirement text and comment"),
    registry: RequirementRegistry = Depends(get_registry),
    user_id: str = Depends(get_current_user),
):
    """List the caller's requirements of a section, optionally filtered."""
    section = await registry.get_section_by_slug(slug)
    requirements = await registry.list_requirements(section.id, user_id)
    shown = filter_requirements(requirements, q)
    return SectionRequirementsResponse(
        section=SectionResponse.from_section(section),
        requirements=[RequirementResponse.from_requirement(r) for r in shown],
        total=len(requirements),
        query=q,
    )


@app.put("/api/sections/{slug}/requirements", response_model=list[RequirementResponse])
async def replace_section_requirements(
    slug: str,
    body: RequirementBatch,
    registry: RequirementRegistry = Depends(get_registry),
    user_id: str = Depends(get_current_user),
):
    """Replace the caller's requirements of a section with a new batch."""
    section = await registry.get_section_by_slug(slug)
    created = await registry.create_batch(
        section.id,
        user_id,
        [t.to_template() for t in body.requirements],
    )
    _trace(
        "batch_replaced",
        f"{len(created)} requirement(s) created",
        {"section": slug, "user_id": user_id},
    )
    return [RequirementResponse.from_requirement(r) for r in created]


@app.patch("/api/requirements/{requirement_id}", response_model=FieldUpdateResponse)
async def update_requirement(
    requirement_id: str,
    body: FieldUpdate,
    registry: RequirementRegistry = Depends(get_registry),
    user_id: str = Depends(get_current_user),
):
    """Update one editable field of a requirement."""
    updated_at = await registry.set_field(requirement_id, user_id, body.field, body.value)
    _trace(
        "requirement_updated",
        "Requirement updated",
        {"requirement_id": requirement_id, "field": body.field},
    )
    return FieldUpdateResponse(id=requirement_id, field=body.field, updated_at=updated_at)


# ============ Search ============

@app.get("/api/search", response_model=SearchResponse)
async def search(
    q: str = Query(default=""),
    registry: RequirementRegistry = Depends(get_registry),
    user_id: str = Depends(get_current_user),
):
    """Quick search across all of the caller's requirements."""
    found = await registry.search(user_id, q)
    if found is INSUFFICIENT_INPUT:
        return SearchResponse(status=SearchStatusEnum.INSUFFICIENT_INPUT, query=q)

    sections = {s.id: s for s in await registry.list_sections()}
    results = []
    for req in found:
        section = sections.get(req.section_id)
        results.append(SearchResultSchema(
            id=req.id,
            verification_requirement=req.verification_requirement or "",
            section_code=req.section_code or "",
            cwe=req.cwe or "",
            section_id=req.section_id,
            section_name=section.name if section else "",
            section_slug=section.slug if section else "",
        ))
    return SearchResponse(status=SearchStatusEnum.OK, query=q, results=results)


# ============ Results ============

@app.get("/api/stats", response_model=StatsResponse)
async def get_stats(
    q: str | None = Query(default=None, description="Filter sections by name"),
    store: RequirementStore = Depends(get_store),
    policy: LevelPolicy = Depends(get_level_policy),
    user_id: str = Depends(get_current_user),
):
    """Section statistics, overall statistic and recommendations."""
    dashboard = await load_dashboard(store, user_id, policy)
    return dashboard_payload(
        dashboard,
        threshold=settings.recommendation_threshold,
        limit=settings.max_recommendations,
        section_query=q,
    )


@app.get("/api/results/export")
async def export_results(
    format: ExportFormatEnum = Query(default=ExportFormatEnum.PDF),
    q: str | None = Query(default=None, description="Filter sections by name"),
    store: RequirementStore = Depends(get_store),
    policy: LevelPolicy = Depends(get_level_policy),
    user_id: str = Depends(get_current_user),
):
    """Export the results snapshot as PDF, Markdown or JSON."""
    dashboard = await load_dashboard(store, user_id, policy)

    if format == ExportFormatEnum.PDF:
        filename = report_filename("pdf")
        return Response(
            content=build_pdf(
                filter_sections(dashboard, q),
                threshold=settings.recommendation_threshold,
                limit=settings.max_recommendations,
            ),
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    if format == ExportFormatEnum.MARKDOWN:
        filename = report_filename("md")
        return PlainTextResponse(
            render_markdown(
                dashboard,
                threshold=settings.recommendation_threshold,
                limit=settings.max_recommendations,
                section_query=q,
            ),
            media_type="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    return dashboard_payload(
        dashboard,
        threshold=settings.recommendation_threshold,
        limit=settings.max_recommendations,
        section_query=q,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
