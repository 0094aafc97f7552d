"""Guardian - rate-limited agent-to-agent workflow loop over MCP."""

__version__ = "0.1.0"
