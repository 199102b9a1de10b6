from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional
import time

from reading_tracker.routers import analytics, articles, database
from reading_tracker.tracker import Tracker


def create_app(tracker: Optional[Tracker] = None) -> FastAPI:
    app = FastAPI(
        title="Reading Tracker API",
        description="Link impressions, clicks and tags for the menu-bar reader",
        version="0.1.0"
    )
    app.state.tracker = tracker or Tracker()

    # The browser extension calls in from arbitrary page origins
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup():
        await app.state.tracker.start()

    @app.on_event("shutdown")
    async def shutdown():
        await app.state.tracker.stop()

    @app.get("/api/ping")
    async def ping():
        return {"status": "ok", "timestamp": int(time.time() * 1000), "ready": app.state.tracker.is_ready}

    app.include_router(database.router)
    app.include_router(analytics.router)
    app.include_router(articles.router)
    return app


app = create_app()
