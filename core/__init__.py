# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains ALL the engine logic for the park visit planner:
# provider clients, the attribute decoder, the resolver, the trail
# aggregator, the day scorer and the report composer.
#
# CRITICAL ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP or any agent framework.  The
#   only thing it needs from the outside world is an HttpGet callable
#   (core/http.py), so every module can be tested with a fake transport
#   and zero internet access.
# =============================================================================
