"""Main entry point for the Fathom MCP server.

Run with: python -m fathom_mcp
or: fathom-mcp
"""

from fathom_mcp.server import main

if __name__ == "__main__":
    main()
