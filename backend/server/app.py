"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Configure logging
- Initialize shared resources (generator client)
- Register routes
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from config import AppConfig
from constants import GENERATOR_MAX_RETRIES
from observability import logger

from server.routes import register_routes


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with an explicit configuration
    - ASGI server compatibility
    """
    if config is None:
        config = AppConfig.load_from_env()
    config.validate()

    logger.configure(level=config.log_level, json_lines=config.enable_json_logs)

    app = FastAPI(title="Chat Session API")

    app.state.config = config

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Create generator client ONCE per process
    app.state.generator_client = build_generator_client(config=config)

    # Routes
    register_routes(app)

    return app


def build_generator_client(config: AppConfig) -> AsyncOpenAI:
    """Build an OpenAI-compatible client for the configured provider."""
    return AsyncOpenAI(
        api_key=config.llm_api_key,
        base_url=config.llm_base_url,
        timeout=config.llm_timeout_s,
        max_retries=GENERATOR_MAX_RETRIES,
    )
