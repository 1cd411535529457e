"""MCP server for Notekeep."""
