# (c) Copyright Datacraft, 2026
"""API routers."""
from .passkey import router as passkey_router

__all__ = ["passkey_router"]
