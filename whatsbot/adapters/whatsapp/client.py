"""WhatsApp Web transport — drives web.whatsapp.com with Playwright.

WhatsAppWebClient implements TransportPort. It keeps the login in a
persistent Chromium profile, reports the pairing QR code, polls the chat
list for unread chats and turns their new incoming messages into
IncomingMessage events.
"""

import asyncio
import inspect
import re
import sys
from collections import OrderedDict, defaultdict
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from whatsbot.config import WHATSAPP_WEB_URL, BrowserConfig
from whatsbot.ports.inbound import IncomingMessage
from whatsbot.ports.outbound import TRANSPORT_EVENTS, TransportError

# WhatsApp Web selectors, several per element because the DOM changes often
CHAT_LIST_SELECTORS = [
    '[aria-label="Chat list"]',
    'div[data-testid="chat-list"]',
    "#pane-side",
]
QR_SELECTOR = "div[data-ref]"
CHAT_ROW_SELECTOR = '#pane-side [role="listitem"], div[data-testid="cell-frame-container"]'
UNREAD_BADGE_SELECTOR = '[aria-label*="unread"], [data-testid="icon-unread-count"]'
INCOMING_TEXT_SELECTOR = "div.message-in .copyable-text[data-pre-plain-text]"
COMPOSE_SELECTORS = [
    '[data-testid="conversation-compose-box-input"]',
    'footer div[contenteditable="true"][role="textbox"]',
    '#main footer div[contenteditable="true"]',
]
INVALID_CHAT_POPUP = 'div[data-testid="popup-controls-ok"]'

# "[12:30, 22/02/2026] Contact Name: "
_PRE_PLAIN_RE = re.compile(r"^\[([^\]]+)\]\s*(.*?):\s*$")
_PHONE_CHARS_RE = re.compile(r"[+\s\-()]")

# data-id of the message row wrapping a bubble, e.g. "false_15551234567@c.us_3EB0..."
_MESSAGE_ID_JS = "el => { const row = el.closest('[data-id]'); return row ? row.getAttribute('data-id') : ''; }"

_MAX_SEEN = 2000
_LOAD_TIMEOUT_MS = 60_000


def _log(msg: str):
    print(msg, file=sys.stderr)


# ── Pure helpers ──────────────────────────────────────


def parse_pre_plain_text(pre: str) -> Tuple[str, str]:
    """Split a data-pre-plain-text attribute into (timestamp, author)."""
    match = _PRE_PLAIN_RE.match((pre or "").strip())
    if not match:
        return "", ""
    return match.group(1).strip(), match.group(2).strip()


def phone_from_chat_id(chat_id: str) -> Optional[str]:
    """Return the digits of a phone-style chat id ('15551234567@c.us'), else None."""
    local = chat_id.split("@", 1)[0]
    digits = _PHONE_CHARS_RE.sub("", local)
    return digits if digits.isdigit() else None


def message_key(
    chat: str,
    timestamp: str,
    text: str,
    message_id: str = "",
    position: Optional[int] = None,
) -> str:
    """Dedup key for one bubble.

    The bubble's ``data-id`` is unique per message. Without it, the position
    in the chat separates repeats, since timestamps only carry minutes.
    """
    if message_id:
        return f"{chat}::{message_id}"
    return f"{chat}::{position}::{timestamp}::{text[:80]}"


def parse_unread_count(label: str) -> int:
    """Badge text ('3', '3 unread messages') to a count, defaulting to 1."""
    match = re.search(r"\d+", label or "")
    return int(match.group()) if match else 1


class WhatsAppWebClient:
    """TransportPort implementation over a headless WhatsApp Web session.

    Events: ``qr(payload)``, ``ready()``, ``auth_failure(reason)``,
    ``disconnected(reason)``, ``message(IncomingMessage)``. Handlers may be
    plain functions or coroutines.
    """

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        url: str = WHATSAPP_WEB_URL,
        playwright_factory: Callable = async_playwright,
    ):
        self.config = config or BrowserConfig()
        self.url = url
        self._playwright_factory = playwright_factory
        self._handlers: Dict[str, List[Callable]] = defaultdict(list)
        self._playwright = None
        self._context = None
        self._page = None
        self._monitor_task: Optional[asyncio.Task] = None
        self._page_lock = asyncio.Lock()
        self._seen: "OrderedDict[str, None]" = OrderedDict()
        self._ready = False
        self._closing = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def qr_image_path(self) -> Path:
        return Path(self.config.auth_data_path) / "qr.png"

    # -- Event registry --

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        if event not in TRANSPORT_EVENTS:
            raise ValueError(f"unknown event {event!r}, expected one of {TRANSPORT_EVENTS}")
        self._handlers[event].append(handler)

    async def _emit(self, event: str, *args):
        for handler in list(self._handlers[event]):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                _log(f"[whatsapp] {event} handler failed: {e}")

    # -- Lifecycle --

    async def initialize(self) -> None:
        """Launch the browser and open WhatsApp Web. Raises on launch failure."""
        if self._context is not None:
            return
        self._closing = False
        self._ready = False

        profile_dir = Path(self.config.auth_data_path)
        profile_dir.mkdir(parents=True, exist_ok=True)

        self._playwright = await self._playwright_factory().start()
        try:
            launch_kwargs: Dict[str, Any] = {
                "user_data_dir": str(profile_dir / "session"),
                "headless": self.config.headless,
                "args": list(self.config.args),
                "viewport": {"width": 1280, "height": 900},
                "locale": "en-US",
            }
            if self.config.chromium_path:
                launch_kwargs["executable_path"] = self.config.chromium_path
            self._context = await self._playwright.chromium.launch_persistent_context(**launch_kwargs)
            self._page = self._context.pages[0] if self._context.pages else await self._context.new_page()
            self._page.on("close", self._on_page_closed)
            await self._page.goto(self.url, wait_until="domcontentloaded", timeout=_LOAD_TIMEOUT_MS)
        except Exception:
            await self._teardown()
            raise

        self._monitor_task = asyncio.create_task(self._monitor())

    async def destroy(self) -> None:
        """Stop monitoring and close the browser."""
        self._closing = True
        task = self._monitor_task
        self._monitor_task = None
        if task and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._teardown()

    async def _teardown(self):
        self._ready = False
        context, playwright = self._context, self._playwright
        self._context = self._page = self._playwright = None
        if context is not None:
            try:
                await context.close()
            except PlaywrightError as e:
                _log(f"[whatsapp] browser close failed: {e}")
        if playwright is not None:
            await playwright.stop()

    def _on_page_closed(self, _page=None):
        if self._closing:
            return
        _log("[whatsapp] page closed unexpectedly")
        asyncio.ensure_future(self._disconnect("PAGE_CLOSED"))

    async def _disconnect(self, reason: str):
        if self._closing:
            return
        await self.destroy()
        await self._emit("disconnected", reason)

    # -- Monitor loop --

    async def _monitor(self):
        try:
            if not await self._wait_for_login():
                await self.destroy()
                await self._emit("disconnected", "QR_TIMEOUT")
                return

            self._ready = True
            await self._emit("ready")

            while not self._closing:
                if await self._qr_visible():
                    _log("[whatsapp] session was logged out from the phone")
                    await self._disconnect("LOGOUT")
                    return
                for message in await self._collect_unread():
                    await self._emit("message", message)
                await asyncio.sleep(self.config.poll_interval_seconds)
        except asyncio.CancelledError:
            raise
        except PlaywrightError as e:
            _log(f"[whatsapp] browser error: {e}")
            await self._disconnect("BROWSER_ERROR")

    async def _wait_for_login(self) -> bool:
        """Wait for the chat list, reporting each new QR code. False on timeout."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.qr_timeout_seconds
        last_qr = None
        while loop.time() < deadline and not self._closing:
            if await self._logged_in():
                return True
            payload = await self._read_qr()
            if payload and payload != last_qr:
                last_qr = payload
                await self._save_qr_image()
                await self._emit("qr", payload)
            await asyncio.sleep(self.config.poll_interval_seconds)
        if not self._closing:
            await self._emit("auth_failure", "QR code was not scanned in time")
        return False

    async def _logged_in(self) -> bool:
        for selector in CHAT_LIST_SELECTORS:
            if await self._page.locator(selector).count() > 0:
                return True
        return False

    async def _qr_visible(self) -> bool:
        async with self._page_lock:
            return await self._page.locator(QR_SELECTOR).count() > 0

    async def _read_qr(self) -> Optional[str]:
        qr = self._page.locator(QR_SELECTOR).first
        if await qr.count() == 0:
            return None
        return await qr.get_attribute("data-ref")

    async def _save_qr_image(self):
        try:
            await self._page.locator(QR_SELECTOR).first.screenshot(path=str(self.qr_image_path))
        except PlaywrightError as e:
            _log(f"[whatsapp] could not save QR image: {e}")

    # -- Inbound --

    async def _collect_unread(self) -> List[IncomingMessage]:
        """Open every unread chat and return the messages not seen before."""
        collected: List[IncomingMessage] = []
        async with self._page_lock:
            rows = self._page.locator(CHAT_ROW_SELECTOR)
            for i in range(await rows.count()):
                row = rows.nth(i)
                badge = row.locator(UNREAD_BADGE_SELECTOR).first
                if await badge.count() == 0:
                    continue
                label = await badge.get_attribute("aria-label") or await badge.inner_text()
                unread = parse_unread_count(label)

                title = row.locator("span[title]").first
                chat = (await title.get_attribute("title") or "").strip() if await title.count() else ""
                if not chat:
                    continue

                await row.click()
                await self._page.wait_for_timeout(1000)
                collected.extend(await self._read_incoming(chat, unread))
                await self._close_chat()
        return collected

    async def _close_chat(self):
        # An open chat marks new messages read without a badge
        await self._page.keyboard.press("Escape")

    async def _read_incoming(self, chat: str, limit: int) -> List[IncomingMessage]:
        nodes = self._page.locator(INCOMING_TEXT_SELECTOR)
        count = await nodes.count()
        messages: List[IncomingMessage] = []
        for i in range(max(0, count - limit), count):
            node = nodes.nth(i)
            timestamp, _author = parse_pre_plain_text(await node.get_attribute("data-pre-plain-text") or "")
            text_node = node.locator("span.selectable-text").first
            text = (await text_node.inner_text()) if await text_node.count() else await node.inner_text()
            text = text.strip()
            message_id = await node.evaluate(_MESSAGE_ID_JS) or ""
            key = message_key(chat, timestamp, text, message_id=message_id, position=i)
            if key in self._seen:
                continue
            self._remember(key)
            messages.append(IncomingMessage.from_sender(chat, text))
        return messages

    def _remember(self, key: str):
        self._seen[key] = None
        while len(self._seen) > _MAX_SEEN:
            self._seen.popitem(last=False)

    # -- Outbound --

    async def reply(self, message: IncomingMessage, text: str) -> None:
        await self.send(message.sender_id, text)

    async def send(self, chat_id: str, text: str) -> None:
        if not self._ready or self._page is None:
            raise TransportError("WhatsApp client is not connected")
        async with self._page_lock:
            try:
                await self._open_chat(chat_id)
                await self._type_and_send(text)
            finally:
                await self._close_chat()

    async def _open_chat(self, chat_id: str):
        phone = phone_from_chat_id(chat_id)
        if phone:
            await self._page.goto(f"{self.url}/send?phone={phone}", wait_until="domcontentloaded")
            await self._page.wait_for_selector(
                f"{COMPOSE_SELECTORS[-1]}, {INVALID_CHAT_POPUP}", timeout=30_000,
            )
            popup = self._page.locator(INVALID_CHAT_POPUP)
            if await popup.count() > 0:
                await popup.click()
                raise TransportError(f"chat not found for {chat_id!r}")
            return

        row = self._page.locator(f'#pane-side span[title="{chat_id}"]').first
        if await row.count() == 0:
            raise TransportError(f"chat not found for {chat_id!r}")
        await row.click()

    async def _type_and_send(self, text: str):
        for selector in COMPOSE_SELECTORS:
            box = self._page.locator(selector).first
            if await box.count() == 0:
                continue
            await box.click()
            # Enter sends, so line breaks go in with Shift+Enter
            for n, line in enumerate(text.split("\n")):
                if n:
                    await self._page.keyboard.press("Shift+Enter")
                if line:
                    await self._page.keyboard.insert_text(line)
            await self._page.keyboard.press("Enter")
            return
        raise TransportError("message input not found")
