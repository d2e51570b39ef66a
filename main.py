"""
Backend entry point for the mentorhub notification service.

Architecture:
- One Python process, one asyncio event loop
- Two peer services sharing that loop:
  1. FastAPI (HTTP API for the operator email views)
  2. Email dispatcher (APScheduler, fires queued session emails)

We use FastAPI's lifespan to manage startup/shutdown. The lifespan pattern
gives us uvicorn's signal handling and --reload for free.

Run with: python main.py [--no-scheduler] [--port PORT]
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

project_root = Path(__file__).parent

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")
load_dotenv()

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mentorhub.config import (
    check_required_env_vars,
    get_allowed_origins,
    get_api_port,
    is_email_scheduler_disabled,
    is_production,
)
from mentorhub.database import close_engine
from mentorhub.notifications.dispatch import (
    init_dispatcher,
    is_running,
    shutdown_dispatcher,
)
from web_api.routes.jobs import router as jobs_router
from web_api.routes.session_emails import router as session_emails_router

if os.environ.get("SENTRY_DSN"):
    sentry_sdk.init(
        dsn=os.environ["SENTRY_DSN"],
        environment="production" if is_production() else "development",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Starts the email dispatcher alongside the API and stops it on shutdown.
    """
    ok, warnings = check_required_env_vars()
    for warning in warnings:
        print(warning)
    if not ok:
        raise RuntimeError("Missing required environment variables")

    if is_email_scheduler_disabled():
        print("Email dispatcher disabled (--no-scheduler flag or DISABLE_EMAIL_SCHEDULER=true)")
    else:
        init_dispatcher()

    yield  # FastAPI runs here, dispatcher fires jobs alongside it

    print("Shutting down peer services...")
    shutdown_dispatcher()
    await close_engine()  # Close database connections


app = FastAPI(
    title="MentorHub Session Notifications API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session_emails_router)
app.include_router(jobs_router)


@app.get("/")
async def root():
    return {"status": "ok"}


@app.get("/health")
async def health():
    """Health check endpoint with dispatcher status."""
    return {
        "status": "healthy",
        "email_dispatcher_running": is_running(),
    }


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="MentorHub Notification Server")
    parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Disable the email dispatcher (useful for running multiple dev servers)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=get_api_port(),
        help="Port to run the server on (default: API_PORT or 8000)",
    )
    args = parser.parse_args()

    # Set env var so it persists across uvicorn reloads
    if args.no_scheduler:
        os.environ["DISABLE_EMAIL_SCHEDULER"] = "true"

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )
