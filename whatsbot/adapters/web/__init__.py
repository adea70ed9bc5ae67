"""HTTP adapter: health and pairing endpoints."""
