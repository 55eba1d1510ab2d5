# server/server.py
import asyncio
import json
import logging
import os
import signal
import sys
import warnings
from contextlib import asynccontextmanager
from typing import Optional, TextIO

import uvicorn
from fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Mount, Route

from auth_middleware import AuthMiddleware
from config import ServerConfig, load_config
from errors import ConfigurationError, MaiaError
from mcp_app import create_mcp_server
from platform_port import DatabasePlatform
from postgres_connector import PostgresPlatform
from supabase_connector import SupabasePlatform
from tools.composer import ToolRegistry, compose_from_config

logger = logging.getLogger("server")


# -------------------------------------------------------------
# Logging
# -------------------------------------------------------------
class JSONHandler(logging.StreamHandler):
    def emit(self, record):
        self.stream.write(json.dumps({
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }) + "\n")
        self.flush()


def configure_logging(json_logs: bool = False, stream: TextIO = sys.stdout) -> None:
    """stdio transport owns stdout, so callers pass stderr there."""
    handler = JSONHandler(stream) if json_logs else logging.StreamHandler(stream)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[handler],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("fastmcp").setLevel(logging.WARNING)


# -------------------------------------------------------------
# Graceful Shutdown
# -------------------------------------------------------------
def _graceful(*_):
    logger.info("🛑 Received shutdown signal. Shutting down gracefully.")
    sys.exit(0)


# -------------------------------------------------------------
# Platform
# -------------------------------------------------------------
def build_platform(config: ServerConfig) -> DatabasePlatform:
    settings = config.platform
    if settings.kind == "supabase":
        return SupabasePlatform(settings.access_token, api_url=settings.api_url)
    if settings.kind == "postgres":
        return PostgresPlatform(settings.dsn, database_name=settings.database_name)
    raise ConfigurationError(
        f"Unknown platform '{settings.kind}'. Allowed values: supabase, postgres"
    )


# -------------------------------------------------------------
# Build ASGI app
# -------------------------------------------------------------
def create_app(
    config: ServerConfig,
    platform: DatabasePlatform,
    registry: Optional[ToolRegistry] = None,
    mcp: Optional[FastMCP] = None,
) -> Starlette:
    registry = registry if registry is not None else compose_from_config(config, platform)
    mcp = mcp if mcp is not None else create_mcp_server(config, platform, registry)
    mcp_http_app = mcp.http_app()

    # ---- Simple Endpoints ----
    async def health(request):
        return PlainTextResponse("ok")

    async def info(request):
        return JSONResponse({
            "name": config.server_name,
            "platform": config.platform.kind,
            "safety_mode": registry.safety_mode.value,
            "features": sorted(g.value for g in registry.features),
            "tools": list(registry),
        })

    async def version(request):
        return JSONResponse({
            "server": config.server_name,
            "version": os.getenv("APP_VERSION", "1.0.0"),
            "python": sys.version,
        })

    @asynccontextmanager
    async def lifespan(app):
        async with mcp_http_app.lifespan(app):
            logger.info("🔍 Performing initial DB connectivity test...")
            test_connection = getattr(platform, "test_connection", None)
            if test_connection is not None:
                await test_connection()
            try:
                yield
            finally:
                await platform.close()

    return Starlette(
        routes=[
            Route("/version", version, methods=["GET"]),
            Route("/healthz", health, methods=["GET"]),
            Route("/_info", info, methods=["GET"]),
            Mount("/", app=mcp_http_app),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=list(config.cors_origins),
                allow_methods=["*"],
                allow_headers=["*"],
            ),
            Middleware(AuthMiddleware, config=config),
        ],
        lifespan=lifespan,
    )


# -------------------------------------------------------------
# Startup Banner
# -------------------------------------------------------------
def print_banner(config: ServerConfig, registry: ToolRegistry, stream: TextIO) -> None:
    print("=" * 70, file=stream)
    print(f"🚀 MCP Server Starting: {config.server_name}", file=stream)
    print("=" * 70, file=stream)
    print(f"🔒 Safety mode: {registry.safety_mode.value}", file=stream)
    print(f"🧩 Features: {', '.join(sorted(g.value for g in registry.features))}", file=stream)
    print(f"🛠️ Tools: {len(registry)} ({len(registry.mutating_tools)} require confirmation)", file=stream)
    if config.transport == "stdio":
        print("🔌 Transport: stdio", file=stream)
    else:
        print(f"🌐 Listening on port: {config.server_port}", file=stream)
    print("=" * 70, file=stream)


async def run_stdio(mcp: FastMCP, platform: DatabasePlatform) -> None:
    try:
        await mcp.run_async(transport="stdio")
    finally:
        await platform.close()


# -------------------------------------------------------------
# Run Server
# -------------------------------------------------------------
def main() -> None:
    os.environ["PYTHONUNBUFFERED"] = "1"
    warnings.filterwarnings("ignore", category=DeprecationWarning)

    try:
        config = load_config()
    except ConfigurationError as e:
        configure_logging()
        logger.error(f"❌ {e.message}")
        sys.exit(2)

    stdio = config.transport == "stdio"
    stream = sys.stderr if stdio else sys.stdout
    configure_logging(config.log_json, stream)

    try:
        platform = build_platform(config)
        registry = compose_from_config(config, platform)
    except MaiaError as e:
        logger.error(f"❌ Startup failed: {e.message}")
        sys.exit(2)

    mcp = create_mcp_server(config, platform, registry)
    print_banner(config, registry, stream)

    if stdio:
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, _graceful)
        asyncio.run(run_stdio(mcp, platform))
        return

    uvicorn.run(
        create_app(config, platform, registry, mcp),
        host=config.server_host,
        port=config.server_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
