"""bookstack-mcp: MCP tools for writing styled BookStack pages."""

__version__ = "1.3.0"
