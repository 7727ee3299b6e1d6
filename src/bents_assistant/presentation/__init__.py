"""Presentation layer: FastAPI routes and schemas."""
