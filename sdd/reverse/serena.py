"""
Serena MCP availability.

Semantic extraction through Serena runs outside this tool. Availability
is declared through configuration (SDD_SERENA_AVAILABLE=true).
"""

from dataclasses import dataclass

from sdd.lib.config import SddConfig
from sdd.lib.errors import SerenaUnavailableError

INSTALL_HINT = """Serena MCP is required for this command.

  1. Install Serena: uvx --from git+https://github.com/oraios/serena serena start-mcp-server
  2. Register it with your agent's MCP configuration
  3. Set SDD_SERENA_AVAILABLE=true (and optionally SDD_SERENA_PROJECT) in .sdd/sdd.env

Use --skip-serena-check to run with regex-based extraction instead."""


@dataclass
class SerenaStatus:
    available: bool
    project: str = ""

    def describe(self) -> str:
        if self.available:
            project = f" (project: {self.project})" if self.project else ""
            return f"Serena MCP connected{project}"
        return "Serena MCP not available"


def check_serena(config: SddConfig) -> SerenaStatus:
    return SerenaStatus(available=config.serena_available, project=config.serena_project)


def ensure_serena(config: SddConfig, operation: str, skip_check: bool = False) -> SerenaStatus:
    """
    Raises:
        SerenaUnavailableError: Serena is not available and the check is not skipped
    """
    status = check_serena(config)
    if not status.available and not skip_check:
        raise SerenaUnavailableError(f"'reverse {operation}' needs Serena MCP.\n\n{INSTALL_HINT}")
    return status
