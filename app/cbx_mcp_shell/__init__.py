"""
CBX MCP Server for Shell Command Execution.

This MCP server provides LLMs with a policy-gated interface to run
commands in local shells (PowerShell, cmd, Git Bash, bash) and on
remote hosts over pooled SSH sessions.
"""

__version__ = "0.1.0"
