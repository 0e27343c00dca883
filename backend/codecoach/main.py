import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum

from codecoach.api.v1 import router as api_v1_router
from codecoach.api.v1.websocket import router as ws_router
from codecoach.core.config import settings
from codecoach.core.database import init_db
from codecoach.core.errors import QuizError

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="CodeCoach Quiz")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    logger.warning(
        "Request failed on %s %s: %s",
        request.method,
        request.url.path,
        exc.message,
        extra={"code": exc.code},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"ok": False, "code": "SERVER_ERROR", "message": "Unexpected server error", "detail": str(exc)},
    )


@app.on_event("startup")
async def on_startup() -> None:
    await init_db()
    if not settings.GROQ_API_KEY:
        logger.warning("GROQ_API_KEY is not set; quiz generation requests will fail")


@app.get("/")
async def health_check() -> dict:
    return {"status": "ok", "provider": "groq", "model": settings.GROQ_MODEL}


app.include_router(api_v1_router, prefix="/api/v1")
app.include_router(ws_router)

handler = Mangum(app)
