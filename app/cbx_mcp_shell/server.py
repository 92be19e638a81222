"""
FastMCP Server Setup.

This module creates and configures the MCP server instance.
"""

import asyncio
import logging
import shutil
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from fastmcp import FastMCP

from cbx_mcp_shell import __version__
from cbx_mcp_shell.config import CLIServerConfig
from cbx_mcp_shell.http import register_http_routes
from cbx_mcp_shell.session import SessionPool, create_session_pool
from cbx_mcp_shell.tools import HandlerContext, register_tools

logger = logging.getLogger(__name__)


@dataclass
class ServerBundle:
    """Bundle containing server and related components."""

    server: FastMCP
    context: HandlerContext
    session_pool: SessionPool

    def shutdown(self) -> None:
        """
        Close every SSH session and refuse new ones.

        Called once after the server loop has exited. Idempotent.
        """
        logger.info("CBX MCP Shell Server shutting down...")
        # Runs on a fresh event loop. Locks and events touched on the server
        # loop are only awaited here uncontended: the server loop cancelled
        # every in-flight run before returning, so no lock is held and every
        # session is idle.
        asyncio.run(self.session_pool.close_all())


def check_shells(config: CLIServerConfig) -> list[str]:
    """
    Warn about enabled shells whose executable cannot be found.

    Returns:
        Names of enabled shells that were not found
    """
    missing = []
    for name in config.enabled_shells:
        profile = config.shells[name]
        if shutil.which(profile.command) is None:
            logger.warning(f"Shell '{name}' is enabled but '{profile.command}' was not found")
            missing.append(name)
    return missing


def create_server(
    config: CLIServerConfig,
    session_pool: Optional[SessionPool] = None,
) -> ServerBundle:
    """
    Create and configure the MCP server.

    Args:
        config: Server configuration
        session_pool: Pool to use instead of an SSH-backed one (for testing)

    Returns:
        ServerBundle containing the FastMCP instance, handler context and pool
    """
    context = HandlerContext.from_config(config)
    pool = session_pool or create_session_pool(config.ssh)
    context.metrics.active_sessions = lambda: pool.active_count

    check_shells(config)

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[dict]:
        """
        Server lifespan manager.

        Yields a state dict that's available to all tools via context.
        Depending on the transport it may be entered once per client
        session, so SSH sessions are closed by ServerBundle.shutdown.
        """
        logger.info(f"CBX MCP Shell Server v{__version__} session starting...")
        yield {
            "config": config,
            "context": context,
            "session_pool": pool,
        }
        logger.debug("CBX MCP Shell Server session finished")

    # Note: host/port are passed to server.run() at startup time
    mcp = FastMCP(
        name="cbx_mcp_shell",
        lifespan=lifespan,
    )

    registered = register_tools(mcp, context, pool)
    logger.info(f"Registered tools: {', '.join(registered)}")
    logger.info(f"Enabled shells: {', '.join(config.enabled_shells) or 'none'}")
    if config.ssh.enabled:
        logger.info(f"SSH connections: {', '.join(config.ssh.connections) or 'none'}")

    # Custom HTTP routes for health and metrics
    register_http_routes(mcp, config, context.metrics)

    return ServerBundle(server=mcp, context=context, session_pool=pool)
