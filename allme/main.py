from __future__ import annotations

import logging
import os

from fastapi import FastAPI

from allme.application.dtos.common_dto import HealthResponse, RootResponse
from allme.infrastructure.api.middlewares import add_default_middlewares
from allme.infrastructure.api.routes.account_routes import router as account_router
from allme.infrastructure.api.routes.analytics_routes import router as analytics_router
from allme.infrastructure.api.routes.auth_routes import router as auth_router
from allme.infrastructure.api.routes.link_routes import router as link_router
from allme.infrastructure.api.routes.profile_routes import router as profile_router
from allme.infrastructure.api.routes.public_routes import router as public_router
from allme.infrastructure.api.routes.tracking_routes import router as tracking_router


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="allme Backend",
        version="0.1.0",
        description="""
        ## allme Backend API

        Link-in-bio service: every user gets a public page listing their links,
        with a theme, an avatar and click/view analytics gated by plan.

        ### Features
        - **Profiles**: created on first sign-in, editable username, bio and theme
        - **Links**: add, edit, toggle, schedule and reorder
        - **Tracking**: best-effort click and page view counters
        - **Plans**: Free, Pro and Business limits and capabilities
        - **Account**: avatar upload, promo codes, account deletion

        ### Authentication
        Dashboard endpoints require a Supabase access token:
        ```
        Authorization: Bearer your-jwt-token
        ```
        Public pages, username checks and tracking work without one.
        """,
        contact={
            "name": "allme Team",
            "email": "support@allme.site",
        },
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    add_default_middlewares(app)

    @app.get("/", response_model=RootResponse, summary="API Root", description="Basic information about the allme API")
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "allme-backend", "version": app.version}

    @app.get("/health", response_model=HealthResponse, summary="Health Check", description="Check if the API service is running")
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(link_router)
    app.include_router(analytics_router)
    app.include_router(account_router)
    app.include_router(tracking_router)
    app.include_router(public_router)
    return app


app = create_app()
