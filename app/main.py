#!/usr/bin/env python3
"""
CBX MCP Shell Server - Entry Point

This is the main entry point for the MCP server.
Supports both stdio and streamable-http transports.
"""

import argparse
import signal
import sys
from pathlib import Path

# Add app directory to path for imports when running directly
APP_DIR = Path(__file__).parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from cbx_mcp_shell import __version__
from cbx_mcp_shell.config import create_default_config, load_config
from cbx_mcp_shell.server import ServerBundle, create_server
from cbx_mcp_shell.utils import get_logger, setup_logging

logger = get_logger("cbx_mcp_shell.main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="CBX MCP Server for local and SSH command execution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start with stdio transport (default for local dev)
  python main.py --transport stdio

  # Start with HTTP transport
  python main.py --transport streamable-http --port 8080

  # Use an explicit config file
  python main.py --config /path/to/config.yaml

  # Write the default configuration and exit
  python main.py --init-config ~/.cbx-shell/config.yaml
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"cbx-mcp-shell {__version__}",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Configuration file path (applied over the config directory)",
    )
    parser.add_argument(
        "--config-dir",
        type=str,
        help="Configuration directory path (default: ~/.cbx-shell/)",
    )
    parser.add_argument(
        "--init-config",
        type=str,
        metavar="PATH",
        help="Write the default configuration to PATH and exit",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        help="Transport protocol (overrides config)",
    )
    parser.add_argument(
        "--host",
        type=str,
        help="Host to bind to (for HTTP transport, overrides config)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port to listen on (for HTTP transport, overrides config)",
    )
    return parser.parse_args(argv)


def setup_signal_handlers() -> None:
    """Treat SIGTERM like Ctrl+C so SSH sessions are closed on the way out."""
    signal.signal(signal.SIGTERM, signal.default_int_handler)


def run_server(bundle: ServerBundle) -> None:
    """Run the server on the configured transport until it stops."""
    config = bundle.context.config

    if config.server.transport == "stdio":
        logger.info("Running in stdio mode...")
        bundle.server.run(transport="stdio")
    else:
        import uvicorn

        logger.info(f"Running on http://{config.server.host}:{config.server.port}")
        app = bundle.server.http_app()
        uvicorn.run(
            app,
            host=config.server.host,
            port=config.server.port,
            log_level=config.server.log_level,
        )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.init_config:
        try:
            path = create_default_config(args.init_config)
        except (OSError, ValueError) as e:
            print(f"Error writing configuration: {e}", file=sys.stderr)
            return 1
        print(f"Default configuration written to {path}", file=sys.stderr)
        return 0

    # Load configuration
    try:
        config = load_config(args.config_dir, args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    # Apply CLI overrides
    if args.transport:
        config.server.transport = args.transport
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    setup_logging(config.server.log_level, config.server.log_file)
    setup_signal_handlers()

    bundle = create_server(config)
    logger.info(f"Starting CBX MCP Shell Server v{__version__}")
    logger.info(f"Transport: {config.server.transport}")

    try:
        run_server(bundle)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    except Exception as e:
        logger.error(f"Server error: {e}")
        return 1
    finally:
        bundle.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())
