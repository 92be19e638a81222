"""
Custom HTTP routes served next to the MCP endpoint.

Only reachable with the streamable-http transport.
"""

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse

from cbx_mcp_shell import __version__
from cbx_mcp_shell.config.models import CLIServerConfig
from cbx_mcp_shell.http.metrics import MetricsCollector


def register_http_routes(
    mcp: FastMCP,
    config: CLIServerConfig,
    metrics: MetricsCollector,
) -> None:
    """Register /health, /ready and /metrics."""

    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        """Liveness probe."""
        return JSONResponse({
            "status": "healthy",
            "version": __version__,
            "service": "cbx_mcp_shell",
        })

    @mcp.custom_route("/ready", methods=["GET"])
    async def ready_check(request: Request) -> JSONResponse:
        """Readiness probe; ready when at least one shell or SSH is usable."""
        checks = {
            "server": True,
            "shells_enabled": bool(config.enabled_shells),
            "ssh_enabled": config.ssh.enabled,
        }
        is_ready = checks["shells_enabled"] or checks["ssh_enabled"]
        return JSONResponse(
            {
                "status": "ready" if is_ready else "not_ready",
                "checks": checks,
                "shells": config.enabled_shells,
            },
            status_code=200 if is_ready else 503,
        )

    @mcp.custom_route("/metrics", methods=["GET"])
    async def metrics_endpoint(request: Request) -> PlainTextResponse:
        """Prometheus metrics endpoint."""
        return PlainTextResponse(
            metrics.format_prometheus(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )
