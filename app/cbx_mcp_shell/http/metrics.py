"""
Prometheus metrics.

Counts tool calls and command outcomes for the /metrics endpoint.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from cbx_mcp_shell import __version__


@dataclass
class MetricsCollector:
    """
    Simple metrics collector for Prometheus exposition.

    Command outcomes:
    - success: exit code 0
    - failed: ran but exited non-zero
    - blocked: rejected by the security policy
    - timeout: killed after exceeding the command timeout
    - error: spawn, connection or other mechanism failure
    """

    tool_calls_total: int = 0
    commands_success: int = 0
    commands_failed: int = 0
    commands_blocked: int = 0
    commands_timeout: int = 0
    commands_error: int = 0

    start_time: float = field(default_factory=time.time)

    tool_counts: dict[str, int] = field(default_factory=dict)

    # Gauge source for open SSH sessions, set by the server
    active_sessions: Optional[Callable[[], int]] = None

    def inc_tool_call(self, tool_name: str) -> None:
        """Increment tool call counters."""
        self.tool_calls_total += 1
        self.tool_counts[tool_name] = self.tool_counts.get(tool_name, 0) + 1

    def record_exit(self, exit_code: Optional[int]) -> None:
        """Count a command that ran to completion."""
        if exit_code == 0:
            self.commands_success += 1
        else:
            self.commands_failed += 1

    def record_error(self, kind: str) -> None:
        """Count a command rejected or aborted with an error of `kind`."""
        if kind == "policy_violation":
            self.commands_blocked += 1
        elif kind == "timeout":
            self.commands_timeout += 1
        else:
            self.commands_error += 1

    def format_prometheus(self) -> str:
        """
        Format metrics in Prometheus exposition format.

        Returns:
            Metrics as text in Prometheus format
        """
        uptime = time.time() - self.start_time
        sessions = self.active_sessions() if self.active_sessions else 0

        lines = [
            "# HELP cbx_shell_info Server information",
            "# TYPE cbx_shell_info gauge",
            f'cbx_shell_info{{version="{__version__}"}} 1',
            "",
            "# HELP cbx_shell_uptime_seconds Server uptime in seconds",
            "# TYPE cbx_shell_uptime_seconds gauge",
            f"cbx_shell_uptime_seconds {uptime:.2f}",
            "",
            "# HELP cbx_shell_tool_calls_total Total tool calls",
            "# TYPE cbx_shell_tool_calls_total counter",
            f"cbx_shell_tool_calls_total {self.tool_calls_total}",
            "",
            "# HELP cbx_shell_commands_total Commands by outcome",
            "# TYPE cbx_shell_commands_total counter",
            f'cbx_shell_commands_total{{outcome="success"}} {self.commands_success}',
            f'cbx_shell_commands_total{{outcome="failed"}} {self.commands_failed}',
            f'cbx_shell_commands_total{{outcome="blocked"}} {self.commands_blocked}',
            f'cbx_shell_commands_total{{outcome="timeout"}} {self.commands_timeout}',
            f'cbx_shell_commands_total{{outcome="error"}} {self.commands_error}',
            "",
            "# HELP cbx_shell_ssh_sessions Open SSH sessions",
            "# TYPE cbx_shell_ssh_sessions gauge",
            f"cbx_shell_ssh_sessions {sessions}",
        ]

        if self.tool_counts:
            lines.extend([
                "",
                "# HELP cbx_shell_tool_calls_by_name Tool calls by tool name",
                "# TYPE cbx_shell_tool_calls_by_name counter",
            ])
            for tool_name, count in sorted(self.tool_counts.items()):
                lines.append(f'cbx_shell_tool_calls_by_name{{tool="{tool_name}"}} {count}')

        return "\n".join(lines) + "\n"
