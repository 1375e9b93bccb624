# =============================================================================
# core/errors.py  -  Upstream failure taxonomy
# =============================================================================
#
# Only two things are ever RAISED out of core/:
#   - TransientIOError:      the network or the upstream said no (non-2xx)
#   - SchemaValidationError: the upstream answered, but not in a shape we know
#
# Everything else is a VALUE:
#   - "not found" is None (see resolver.resolve, nps.get_park)
#   - a failed per-trail detail fetch is Trail.enrichment_failed = True
#   - an unparseable "4.5 mi" is an absent scalar, never an exception
# =============================================================================

from typing import Optional


class UpstreamError(Exception):
    """Base class for failures talking to an upstream API."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class TransientIOError(UpstreamError):
    """Network failure or non-2xx status. Not retried inside core/."""

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message, url)
        self.status = status


class SchemaValidationError(UpstreamError):
    """An upstream payload did not match its provider schema."""
