from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse, Response, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from app_config import get_app_settings
from services.batch import run_batch
from services.csv_export import NothingToExportError, build_csv, export_filename
from services.events import EventHub
from services.generation import GenerationClient
from services.metadata_requester import MetadataRequester, bind_requester
from services.models import FileHandle
from services.registry import AssetRegistry

APP_SETTINGS = get_app_settings()

app = FastAPI(title="Stock Metadata Generator API")
logger = logging.getLogger("uvicorn.error")

REGISTRY = AssetRegistry()
EVENTS = EventHub()
GENERATION_CLIENT: Optional[GenerationClient] = None

APP_STATE: Dict[str, Any] = {
    "marketplace": APP_SETTINGS.default_marketplace,
    "generating": False,
    "global_error": None,
}

# Writes that must wait until the running batch has finished.
GENERATION_LOCKED_ROUTES = {
    ("POST", "/assets"),
    ("DELETE", "/assets"),
    ("PUT", "/marketplace"),
    ("POST", "/generate"),
}

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

UI_ENABLED = False
UI_DIST_DIR: Optional[Path] = None


class MarketplaceUpdate(BaseModel):
    marketplace: str


class AssetEdit(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    keywords: Optional[str] = None


def _state_set(**fields: Any) -> None:
    APP_STATE.update(fields)


def _assets_payload() -> Dict[str, Any]:
    return {
        "assets": [asset.model_dump(mode="json") for asset in REGISTRY],
        "marketplace": APP_STATE["marketplace"],
        "generating": APP_STATE["generating"],
        "global_error": APP_STATE["global_error"],
        "has_pending": REGISTRY.has_pending(),
        "has_completed": REGISTRY.has_completed(),
    }


def _publish_registry() -> None:
    EVENTS.publish({"type": "registry", **_assets_payload()})


def get_generation_client() -> GenerationClient:
    global GENERATION_CLIENT
    if GENERATION_CLIENT is None:
        GENERATION_CLIENT = GenerationClient.from_settings(APP_SETTINGS)
    return GENERATION_CLIENT


def get_requester() -> MetadataRequester:
    return bind_requester(get_generation_client())


def _configure_frontend() -> None:
    global UI_ENABLED, UI_DIST_DIR
    dist_dir = APP_SETTINGS.frontend_dist_path
    if APP_SETTINGS.serve_frontend and dist_dir and dist_dir.is_dir():
        UI_ENABLED = True
        UI_DIST_DIR = dist_dir
        app.mount("/ui", StaticFiles(directory=dist_dir, html=True), name="ui")
        logger.info("UI enabled at /ui (dist=%s)", dist_dir)
    else:
        UI_ENABLED = False
        UI_DIST_DIR = None


@app.on_event("startup")
def startup() -> None:
    if not APP_SETTINGS.api_key and APP_SETTINGS.provider != "ollama":
        logger.warning("No API key configured for provider=%s; generation requests will fail", APP_SETTINGS.provider)
    logger.info(
        "Startup: provider=%s model=%s marketplaces=%s",
        APP_SETTINGS.provider,
        APP_SETTINGS.model,
        len(APP_SETTINGS.marketplaces),
    )
    _configure_frontend()


@app.on_event("shutdown")
async def shutdown() -> None:
    global GENERATION_CLIENT
    if GENERATION_CLIENT is not None:
        await GENERATION_CLIENT.aclose()
        GENERATION_CLIENT = None


@app.middleware("http")
async def generation_write_lock(request, call_next):
    path = (request.url.path or "/").rstrip("/") or "/"
    # Uploads, marketplace changes and new batches wait for the running batch.
    if APP_STATE["generating"] and (request.method.upper(), path) in GENERATION_LOCKED_ROUTES:
        return JSONResponse(
            status_code=409,
            content={"detail": "Metadata generation in progress", "generating": True},
        )
    return await call_next(request)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/")
def root():
    if UI_ENABLED:
        return RedirectResponse(url="/ui/")
    return {"status": "ok"}


@app.get("/ui/{full_path:path}")
def ui_fallback(full_path: str):
    if not UI_ENABLED or not UI_DIST_DIR:
        raise HTTPException(status_code=404, detail="UI disabled")
    candidate = UI_DIST_DIR / full_path
    if full_path and candidate.exists() and candidate.is_file():
        return FileResponse(candidate)
    index_path = UI_DIST_DIR / "index.html"
    if index_path.exists():
        return FileResponse(index_path, media_type="text/html")
    raise HTTPException(status_code=404, detail="UI index missing")


@app.get("/marketplaces")
def list_marketplaces() -> Dict[str, Any]:
    return {"marketplaces": list(APP_SETTINGS.marketplaces), "selected": APP_STATE["marketplace"]}


@app.get("/marketplace")
def get_marketplace() -> Dict[str, str]:
    return {"marketplace": APP_STATE["marketplace"]}


@app.put("/marketplace")
async def set_marketplace(payload: MarketplaceUpdate) -> Dict[str, str]:
    marketplace = payload.marketplace.strip()
    if marketplace not in APP_SETTINGS.marketplaces:
        raise HTTPException(status_code=400, detail=f"Unknown marketplace: {payload.marketplace}")
    _state_set(marketplace=marketplace)
    logger.info("Marketplace selected: %s", marketplace)
    return {"marketplace": marketplace}


@app.get("/assets")
async def list_assets() -> Dict[str, Any]:
    return _assets_payload()


@app.post("/assets")
async def upload_assets(
    files: List[UploadFile] = File(...),
    marketplace: Optional[str] = Form(None),
) -> Dict[str, Any]:
    selected = (marketplace or "").strip() or APP_STATE["marketplace"]
    if selected not in APP_SETTINGS.marketplaces:
        raise HTTPException(status_code=400, detail=f"Unknown marketplace: {marketplace}")
    handles = [
        FileHandle(name=file.filename, content_type=file.content_type, size=file.size)
        for file in files
        if file.filename
    ]
    if not handles:
        raise HTTPException(status_code=400, detail="No files provided")
    before = len(REGISTRY)
    REGISTRY.add_files(handles, selected)
    added = len(REGISTRY) - before
    logger.info("Assets added: %s new, %s skipped (marketplace=%s)", added, len(handles) - added, selected)
    _publish_registry()
    return {"added": added, "skipped": len(handles) - added, **_assets_payload()}


@app.patch("/assets/{asset_id:path}")
async def edit_asset(asset_id: str, payload: AssetEdit) -> Dict[str, Any]:
    updated = REGISTRY.edit(asset_id, **payload.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(status_code=404, detail="Asset not found")
    EVENTS.publish({"type": "asset", "asset": updated.model_dump(mode="json")})
    return {"status": "ok", "asset": updated.model_dump(mode="json")}


@app.delete("/assets")
async def clear_assets() -> Dict[str, Any]:
    removed = len(REGISTRY)
    REGISTRY.clear()
    _state_set(global_error=None)
    logger.info("Registry cleared: %s asset(s) discarded", removed)
    _publish_registry()
    return {"status": "ok", "removed": removed}


@app.post("/generate")
async def generate_metadata(requester: MetadataRequester = Depends(get_requester)) -> Dict[str, Any]:
    marketplace = APP_STATE["marketplace"]
    if not REGISTRY.has_pending():
        result = await run_batch(REGISTRY, requester, marketplace)
        return result.model_dump(mode="json")

    _state_set(generating=True, global_error=None)
    EVENTS.publish({"type": "batch", "status": "running", "marketplace": marketplace})
    try:
        result = await run_batch(
            REGISTRY,
            requester,
            marketplace,
            max_concurrency=APP_SETTINGS.max_concurrency,
            publish=EVENTS.publish,
        )
    finally:
        _state_set(generating=False)
    if result.status == "failed":
        _state_set(global_error=result.message)
    EVENTS.publish(
        {
            "type": "batch",
            "status": result.status,
            "message": result.message,
            "total": result.total,
            "completed": result.completed,
            "failed": result.failed,
        }
    )
    return result.model_dump(mode="json")


@app.get("/export")
async def export_csv() -> Response:
    try:
        content = build_csv(REGISTRY)
    except NothingToExportError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    filename = export_filename(APP_STATE["marketplace"])
    return Response(
        content=content,
        media_type="text/csv;charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/events")
def stream_events() -> StreamingResponse:
    headers = {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }
    return StreamingResponse(EVENTS.stream(), media_type="text/event-stream", headers=headers)
