"""Adapters for the WhatsApp Web transport and the HTTP server."""
