"""FastAPI application, health routes, and startup."""

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.responses import FileResponse, HTMLResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from whatsbot.adapters.whatsapp.client import WhatsAppWebClient
from whatsbot.config import CONFIG, AppConfig
from whatsbot.domain.agent import ChatAgent
from whatsbot.domain.uptime import format_uptime, process_uptime

PUBLIC_DIR = Path(__file__).resolve().parents[3] / "public"


def _log(msg: str):
    print(msg, file=sys.stderr)


app = FastAPI(title="WhatsApp Bot")
app.mount("/static", StaticFiles(directory=str(PUBLIC_DIR), check_dir=False), name="static")

# Global instances
app_config = AppConfig.from_env()
whatsapp = WhatsAppWebClient(app_config.browser)
agent = ChatAgent(whatsapp, config=app_config)
agent.attach()

_init_task: Optional[asyncio.Task] = None


# Response models
class HealthResponse(BaseModel):
    status: str
    message: str
    timestamp: str
    uptime: str


class QRResponse(BaseModel):
    message: str
    qr: Optional[str] = None
    received_at: Optional[str] = None
    instruction: Optional[str] = None


class StatusResponse(BaseModel):
    state: str
    ready: bool
    last_qr_at: Optional[str] = None
    messages_handled: int
    replies_sent: int
    uptime: str


# API endpoints
@app.get("/", response_class=HTMLResponse)
async def root():
    """Landing page"""
    index = PUBLIC_DIR / "index.html"
    if index.is_file():
        return FileResponse(index)
    return "<html><body><h1>WhatsApp Bot</h1><p>See <a href='/health'>/health</a>.</p></body></html>"


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        status="OK",
        message="WhatsApp Bot is running",
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        uptime=format_uptime(process_uptime()),
    )


@app.get("/qr", response_model=QRResponse)
async def qr():
    """Pending pairing QR payload, if any"""
    if agent.last_qr:
        return QRResponse(
            message="Scan this QR code with WhatsApp (Settings > Linked devices)",
            qr=agent.last_qr,
            received_at=agent.last_qr_at.isoformat() if agent.last_qr_at else None,
        )
    return QRResponse(
        message="Check the server logs for the QR code",
        instruction=f"QR screenshots are saved to {whatsapp.qr_image_path}",
    )


@app.get("/status", response_model=StatusResponse)
async def status():
    snapshot: Dict[str, Any] = agent.status()
    return StatusResponse(uptime=format_uptime(process_uptime()), **snapshot)


# ============================================
# Startup / shutdown
# ============================================
def _loop_exception_handler(loop, context):
    error = context.get("exception") or context.get("message")
    _log(f"Unhandled error in background task: {error}")


@app.on_event("startup")
async def startup_event():
    """Start the WhatsApp client without blocking the HTTP server"""
    global _init_task
    _log(f"Server running on port {CONFIG['port']}")
    asyncio.get_running_loop().set_exception_handler(_loop_exception_handler)
    _init_task = asyncio.create_task(agent.initialize())


@app.on_event("shutdown")
async def shutdown_event():
    _log("Shutting down gracefully...")
    if _init_task and not _init_task.done():
        _init_task.cancel()
    try:
        await agent.shutdown()
    except Exception as e:
        _log(f"Error during shutdown: {e}")
