# (c) Copyright Datacraft, 2026
"""ASGI application."""
import logging

from fastapi import FastAPI

from passkey_server.db.engine import init_db
from passkey_server.routers import passkey_router

logger = logging.getLogger(__name__)


def create_app(create_tables: bool = True) -> FastAPI:
	app = FastAPI(title="passkey-server")
	app.include_router(passkey_router)

	if create_tables:
		init_db()
		logger.info("Passkey tables ready")

	return app
