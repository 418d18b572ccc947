from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware


def add_default_middlewares(app: FastAPI) -> None:
    env = os.getenv("ENV", "development")
    configured = os.getenv("CORS_ALLOWED_ORIGINS")

    if configured:
        allowed_origins = [origin.strip() for origin in configured.split(",") if origin.strip()]
    elif env in ("development", "staging"):
        allowed_origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",  # Vite default
            "http://127.0.0.1:5173",
        ]
    else:
        allowed_origins = ["https://allme.site"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
