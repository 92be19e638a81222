"""
Remote session management.

- RemoteSession: base class with channel limits and close semantics
- SSHSession: paramiko implementation
- SessionPool: one live session per connection id
"""

from cbx_mcp_shell.config.models import SshSettings
from cbx_mcp_shell.session.base import RemoteSession
from cbx_mcp_shell.session.pool import SessionFactory, SessionPool
from cbx_mcp_shell.session.ssh import SSHSession, ssh_session_factory

__all__ = [
    "RemoteSession",
    "SSHSession",
    "SessionFactory",
    "SessionPool",
    "create_session_pool",
    "ssh_session_factory",
]


def create_session_pool(ssh: SshSettings) -> SessionPool:
    """
    Factory function to create the SSH session pool.

    Args:
        ssh: SSH settings (timeouts, channel limits, host key policy)

    Returns:
        Empty SessionPool opening SSHSession instances
    """
    return SessionPool(ssh_session_factory(ssh))
