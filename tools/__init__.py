# =============================================================================
# tools/__init__.py
# =============================================================================
# This package contains the FastMCP tool wrappers.
#
# ARCHITECTURAL ROLE:
#   tools/ is the "translation layer" between an MCP-speaking agent and
#   core/.  The server module:
#     1. Builds the core/ services from Settings (env / .env)
#     2. Wraps each engine operation in a FastMCP tool
#     3. Converts dataclasses → dicts and keeps lists bounded
#     4. Turns upstream failures into {"error": ..., "retryable": ...}
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT contain business logic (that's in core/)
#   - They do NOT decide what to tell the user (that's the agent's job)
# =============================================================================
