"""
Local REST proxy (FastAPI)

Run with:
    python -m oneinch_gateway.proxy --port 3001
"""

from .app import create_app, error_status, FORWARDED_ROUTES

__all__ = ["create_app", "error_status", "FORWARDED_ROUTES"]
