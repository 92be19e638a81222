from cbx_mcp_shell.utils.logging import format_fields, get_logger, setup_logging

__all__ = ["format_fields", "get_logger", "setup_logging"]
