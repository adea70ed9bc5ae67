"""ChatAgent — event handling glue, no framework dependencies.

Reacts to the transport's lifecycle and message events: filters broadcasts,
asks the Responder for a decision, sends replies, notifies the admin on
ready, and re-initializes the transport after a disconnect.
"""

import asyncio
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from whatsbot.config import AppConfig
from whatsbot.domain.responder import Responder
from whatsbot.domain.uptime import format_uptime, process_uptime
from whatsbot.ports.inbound import IncomingMessage
from whatsbot.ports.outbound import TransportPort

# Agent states reported by status()
STATE_IDLE = "idle"
STATE_INITIALIZING = "initializing"
STATE_QR = "qr_pending"
STATE_READY = "ready"
STATE_DISCONNECTED = "disconnected"
STATE_AUTH_FAILED = "auth_failed"
STATE_STOPPED = "stopped"


def _log(msg: str):
    print(msg, file=sys.stderr)


class ChatAgent:
    """Pure agent logic, testable with a mock transport.

    Handles:
    - Message routing (broadcast gate, decision, reply)
    - Ready notice to the admin chat
    - Initialize with retry, reconnect after disconnect
    """

    def __init__(
        self,
        transport: TransportPort,
        responder: Optional[Responder] = None,
        config: Optional[AppConfig] = None,
    ):
        self.config = config or AppConfig()
        self.transport = transport
        self.responder = responder or Responder(
            fallback_probability=self.config.fallback_probability,
        )
        self.state: str = STATE_IDLE
        self.last_qr: Optional[str] = None
        self.last_qr_at: Optional[datetime] = None
        self.messages_handled: int = 0
        self.replies_sent: int = 0
        self._init_lock = asyncio.Lock()
        self._shutting_down = False
        self._reconnect_task: Optional[asyncio.Task] = None

    def attach(self):
        """Register this agent's handlers on the transport."""
        self.transport.on("qr", self.handle_qr)
        self.transport.on("ready", self.handle_ready)
        self.transport.on("auth_failure", self.handle_auth_failure)
        self.transport.on("disconnected", self.handle_disconnected)
        self.transport.on("message", self.handle_message)

    # -- Lifecycle --

    async def initialize(self) -> bool:
        """Start the transport, retrying until it comes up or we shut down.

        Serialized with the reconnect path so two initializations never
        overlap.
        """
        async with self._init_lock:
            while not self._shutting_down:
                self.state = STATE_INITIALIZING
                try:
                    await self.transport.initialize()
                    _log("[agent] WhatsApp client initialization started")
                    return True
                except Exception as e:
                    _log(f"[agent] failed to initialize client: {e}")
                    await asyncio.sleep(self.config.init_retry_delay_seconds)
            return False

    async def shutdown(self):
        """Stop retries and destroy the transport."""
        self._shutting_down = True
        self.state = STATE_STOPPED
        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        try:
            await self.transport.destroy()
            _log("[agent] client destroyed")
        except Exception as e:
            _log(f"[agent] error during shutdown: {e}")
            raise

    # -- Transport events --

    def handle_qr(self, payload: str):
        self.state = STATE_QR
        self.last_qr = payload
        self.last_qr_at = datetime.now(timezone.utc)
        _log("[agent] QR received: scan it with WhatsApp (Linked devices), or GET /qr")

    async def handle_ready(self):
        self.state = STATE_READY
        self.last_qr = None
        _log("[agent] client is ready and connected")

        admin = self.config.admin_number
        if not admin:
            return
        notice = (
            "🤖 WhatsApp Bot is now online!\n\n"
            f"Server: {self.config.app_name}\n"
            f"Uptime: {format_uptime(process_uptime())}"
        )
        try:
            await self.transport.send(admin, notice)
        except Exception as e:
            _log(f"[agent] admin notice failed: {e}")

    def handle_auth_failure(self, reason: Any = None):
        self.state = STATE_AUTH_FAILED
        _log(f"[agent] authentication failure: {reason}")

    def handle_disconnected(self, reason: Any = None):
        _log(f"[agent] client was logged out: {reason}")
        if self._shutting_down:
            return
        self.state = STATE_DISCONNECTED
        if self._reconnect_task and not self._reconnect_task.done():
            return
        _log(f"[agent] reconnecting in {self.config.reconnect_delay_seconds:g} seconds...")
        self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self):
        await asyncio.sleep(self.config.reconnect_delay_seconds)
        await self.initialize()

    async def handle_message(self, message: IncomingMessage):
        """Answer one inbound message. Never raises."""
        if message.is_broadcast:
            return

        self.messages_handled += 1
        _log(f"[agent] message from {message.sender_id}: {message.body}")

        try:
            decision = self.responder.decide(message)
            if not decision.should_reply:
                return
            await self.transport.reply(message, decision.text)
            self.replies_sent += 1
        except Exception as e:
            _log(f"[agent] error handling message from {message.sender_id}: {e}")

    # -- Reporting --

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "ready": self.state == STATE_READY,
            "last_qr_at": self.last_qr_at.isoformat() if self.last_qr_at else None,
            "messages_handled": self.messages_handled,
            "replies_sent": self.replies_sent,
        }
