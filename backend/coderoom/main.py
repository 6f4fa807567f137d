import logging
import time
from typing import Dict

import redis as redis_lib
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from coderoom.api.v1 import access_requests, collab, execute, files, projects, sharing
from coderoom.core.config import settings
from coderoom.core.rate_limiter import init_rate_limiter, limiter
from coderoom.database import engine
from coderoom.services.channel import ChannelRegistry
from coderoom.services.errors import CodeRoomError
from coderoom.services.execution_gateway import ExecutionGateway

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CodeRoom API",
    description="Collaborative code rooms with role-based sharing and remote execution",
    version="1.0.0"
)

# CORS middleware (configured via settings for production safety)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

init_rate_limiter(app)

# Per-process collaboration state and the runner client
app.state.channel_registry = ChannelRegistry(typing_idle_seconds=settings.TYPING_IDLE_SECONDS)
app.state.execution_gateway = ExecutionGateway()


@app.exception_handler(CodeRoomError)
async def coderoom_error_handler(request: Request, exc: CodeRoomError) -> JSONResponse:
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


# Health check endpoint
@app.get("/health")
@limiter.exempt
async def health_check():
    return {"status": "healthy", "service": "CodeRoom Backend"}


# Detailed health including DB and Redis
@app.get("/healthz")
@limiter.exempt
async def health_detailed() -> Dict[str, object]:
    resp: Dict[str, object] = {"service": "CodeRoom Backend", "status": "healthy"}

    # DB check
    t0 = time.time()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        resp["db"] = {"status": "ok", "elapsed_ms": round((time.time() - t0)*1000.0, 2)}
    except Exception as e:
        resp["db"] = {"status": "error", "error": str(e), "elapsed_ms": round((time.time() - t0)*1000.0, 2)}
        resp["status"] = "degraded"

    # Redis check
    t1 = time.time()
    try:
        client = redis_lib.Redis.from_url(settings.REDIS_URL, socket_connect_timeout=1, socket_timeout=1)
        pong = client.ping()
        resp["redis"] = {"status": "ok" if pong else "error", "elapsed_ms": round((time.time() - t1)*1000.0, 2)}
    except Exception as e:
        resp["redis"] = {"status": "error", "error": str(e), "elapsed_ms": round((time.time() - t1)*1000.0, 2)}
        resp["status"] = "degraded"

    resp["channels"] = {"active_projects": len(app.state.channel_registry.active_projects())}
    return resp


# Include API routers
app.include_router(projects.router, prefix=f"{settings.API_V1_STR}/projects", tags=["projects"])
app.include_router(sharing.router, prefix=settings.API_V1_STR, tags=["sharing"])
app.include_router(access_requests.router, prefix=settings.API_V1_STR, tags=["access requests"])
app.include_router(files.router, prefix=settings.API_V1_STR, tags=["files"])
app.include_router(execute.router, prefix=settings.API_V1_STR, tags=["execution"])
app.include_router(collab.router, prefix=settings.API_V1_STR, tags=["collaboration"])


@app.on_event("shutdown")
async def shutdown_event() -> None:
    await app.state.channel_registry.close()
    await app.state.execution_gateway.aclose()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
