"""MCP server for listing, resolving and replying to GitHub pull request review threads."""

__version__ = "0.1.0"
