"""Run the HTTP server and the WhatsApp client: ``python -m whatsbot``."""

import uvicorn

from whatsbot.config import CONFIG


def main():
    uvicorn.run("whatsbot.adapters.web.server:app", host="0.0.0.0", port=CONFIG["port"], log_level="info")


if __name__ == "__main__":
    main()
