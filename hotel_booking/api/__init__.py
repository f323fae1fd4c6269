"""HTTP API: service wiring and the FastAPI application."""
