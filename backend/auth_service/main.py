"""RentMyCar Auth Service API: FastAPI application."""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.auth_service.middleware.error_handlers import register_error_handlers
from backend.auth_service.middleware.preflight_middleware import PreflightMiddleware
from backend.auth_service.routes.admin import router as admin_router
from backend.auth_service.routes.auth import router as auth_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

app = FastAPI(title="RentMyCar Auth Service", version="0.1.0")

# Middleware (last added runs first, so preflight short-circuits before CORS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("CORS_ORIGINS", "*").split(","),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(PreflightMiddleware)

register_error_handlers(app)

# Routes
app.include_router(auth_router)
app.include_router(admin_router)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.on_event("startup")
async def startup():
    from backend.auth_service.models.database import create_tables
    await create_tables()
