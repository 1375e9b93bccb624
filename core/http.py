# =============================================================================
# core/http.py  -  The HTTP GET capability every provider client uses
# =============================================================================
#
# The whole engine depends on ONE call signature:
#
#     HttpGet = (url, headers) -> decoded JSON
#
# that raises TransientIOError on network failure, a non-2xx status, or a
# body that is truncated, not UTF-8 or not JSON.
# Tests pass a fake with the same signature; production uses UrllibTransport.
#
# No retries here, no backoff.  A caller that wants them wraps the transport.
# =============================================================================

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Callable, Mapping, Optional

from core.errors import TransientIOError

logger = logging.getLogger(__name__)

HttpGet = Callable[[str, Mapping[str, str]], Any]


def build_url(base_url: str, path: str, **params: Any) -> str:
    """Join base + path and append non-None query params."""
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    query = {k: v for k, v in params.items() if v is not None}
    if query:
        url += "?" + urllib.parse.urlencode(query, doseq=True)
    return url


class UrllibTransport:
    """Blocking JSON GET over urllib.  Safe to share between threads."""

    def __init__(self, timeout: float = 10.0, user_agent: str = "park-visit-planner/1.0"):
        self.timeout = timeout
        self.user_agent = user_agent

    def __call__(self, url: str, headers: Optional[Mapping[str, str]] = None) -> Any:
        request_headers = {"Accept": "application/json", "User-Agent": self.user_agent}
        request_headers.update(headers or {})
        req = urllib.request.Request(url, headers=request_headers)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                status = getattr(response, "status", 200)
                raw = response.read()
        except urllib.error.HTTPError as e:
            raise TransientIOError(f"HTTP {e.code} from {_redact(url)}", url=url, status=e.code) from e
        except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError) as e:
            # HTTPException covers truncated bodies (IncompleteRead) and bad status lines
            raise TransientIOError(f"Request to {_redact(url)} failed: {e!r}", url=url) from e

        try:
            body = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TransientIOError(f"Undecodable body from {_redact(url)}: {e}", url=url, status=status) from e

        if not 200 <= status < 300:
            raise TransientIOError(f"HTTP {status} from {_redact(url)}", url=url, status=status)

        logger.debug("GET %s -> %s (%d bytes)", _redact(url), status, len(body))
        try:
            return json.loads(body) if body else None
        except json.JSONDecodeError as e:
            raise TransientIOError(f"Invalid JSON from {_redact(url)}: {e}", url=url, status=status) from e


def _redact(url: str) -> str:
    """Strip api_key query values before a URL reaches a log line or an error."""
    parts = urllib.parse.urlsplit(url)
    if not parts.query:
        return url
    pairs = [
        (k, "***" if k.lower() in ("api_key", "apikey") else v)
        for k, v in urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urllib.parse.urlunsplit(parts._replace(query=urllib.parse.urlencode(pairs)))
