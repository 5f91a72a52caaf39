# gainstracker/main.py
import time
import logging
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from gainstracker.routers.auth import router as auth_router
from gainstracker.routers.exercises import router as exercises_router
from gainstracker.routers.session import router as session_router
from gainstracker.routers.workouts import router as workouts_router
from gainstracker.db import SessionLocal  # for healthz DB check
from gainstracker.deps.session import get_registry
from gainstracker.settings import get_settings

log = logging.getLogger("uvicorn")
settings = get_settings()

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # stop every session ticker before the loop goes away
    get_registry().close_all()

app = FastAPI(
    title="GainsTracker API",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "auth", "description": "Registration & login"},
        {"name": "exercises", "description": "Exercise library"},
        {"name": "session", "description": "Active workout draft"},
        {"name": "workouts", "description": "Saved workouts"},
    ],
)


# CORS (relax for local dev; tighten origins in prod via env)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS.split(","),
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = req_id
    log.info("rid=%s %s %s -> %s in %.1fms",
             req_id, request.method, request.url.path, response.status_code, duration_ms)
    return response

@app.get("/")
def root():
    return {"ok": True, "name": "GainsTracker API"}

@app.get("/ping")
def ping():
    return {"pong": True}

@app.get("/healthz")
def healthz():
    # Quick DB sanity check
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as e:
        return {"status": "degraded", "error": str(e)}

@app.get("/version")
def version():
    return {"version": settings.API_VERSION}

# Routers
app.include_router(auth_router)
app.include_router(exercises_router)
app.include_router(session_router)
app.include_router(workouts_router)
