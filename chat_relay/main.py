# chat_relay/main.py
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from chat_relay.config import get_settings
from chat_relay.errors import RelayError, UpstreamFailure
from chat_relay.schemas import ChatResponse, ErrorResponse, HealthResponse
from chat_relay.services import upstream
from chat_relay.services.chat_handler import ChatHandler
from chat_relay.services.history_normalizer import parse_history
from chat_relay.services.upstream import GeminiClient

logger = logging.getLogger(__name__)

PUBLIC_DIR = Path(__file__).resolve().parent.parent / "public"

# --- FastAPI App Initialization ---
app = FastAPI(title="Gemini Chat Relay")

# Global state populated on startup
app_state = {}

# --- CORS Configuration ---
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

if PUBLIC_DIR.is_dir():
    app.mount("/static", StaticFiles(directory=PUBLIC_DIR), name="static")


# --- Server Startup Event ---
@app.on_event("startup")
async def startup_event():
    # Configure the Gemini client; refuse to start without a credential
    settings = get_settings()
    if not settings.gemini_api_key:
        raise ValueError("GEMINI_API_KEY is not set in the environment or .env file")
    upstream.configure(settings.gemini_api_key)

    client = GeminiClient(settings.gemini_model)
    app_state["client"] = client
    app_state["chat_handler"] = ChatHandler(
        client,
        upload_dir=settings.upload_dir,
        max_upload_bytes=settings.max_upload_bytes,
        max_history_turns=settings.max_history_turns,
    )
    logger.info("Using model %s, staging uploads in %s", settings.gemini_model, settings.upload_dir)


# --- Error Handling ---
@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError):
    if exc.status_code < 500:
        body = ErrorResponse(error=exc.error)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))
    body = ErrorResponse(error=exc.error, details=str(exc))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# --- API Endpoints ---
@app.get("/", include_in_schema=False)
async def read_root():
    index = PUBLIC_DIR / "index.html"
    if index.is_file():
        return FileResponse(index)
    return {"message": "Gemini Chat Relay is running"}


@app.post("/api/chat", response_model=ChatResponse)
async def chat_handler(
    message: Optional[str] = Form(None),
    history: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
):
    """
    Relays one chat turn (text and/or an audio/PDF attachment) to Gemini,
    together with the history the browser has kept so far.
    """
    if file is not None and not file.filename:
        # Browsers send an empty part when no file was picked
        file = None
    raw_history = parse_history(history)
    try:
        text = await app_state["chat_handler"].handle(message, file, raw_history)
    except RelayError:
        raise
    except Exception as e:
        logger.exception("Chat API error")
        raise UpstreamFailure(str(e)) from e
    return ChatResponse(message=text)


@app.get("/api/health", response_model=HealthResponse, response_model_exclude_none=True)
async def health_handler():
    """Checks the configured API key with a minimal generation call."""
    client: GeminiClient = app_state["client"]
    try:
        await client.ping()
    except Exception as e:
        logger.error("Health check failed: %s", e)
        body = HealthResponse(status="error", message="API key validation failed", error=str(e))
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))
    return HealthResponse(status="ok", message="API key is valid", model=client.model_name)
