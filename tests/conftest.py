import copy
import threading

import pytest

from core.errors import TransientIOError
from core.lookup_tables import LookupTables, load_lookup_tables


class FakeHttp:
    """Recording stand-in for HttpGet.

    Routes map a URL fragment to a payload, an exception instance (raised),
    or a callable taking the URL.  The longest matching fragment wins; an
    unmatched URL answers like a 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self._lock = threading.Lock()

    def add(self, fragment, response):
        self.routes[fragment] = response

    def urls(self, fragment=""):
        return [url for url, _ in self.calls if fragment in url]

    def __call__(self, url, headers=None):
        with self._lock:
            self.calls.append((url, dict(headers or {})))
        matches = [f for f in self.routes if f in url]
        if not matches:
            raise TransientIOError(f"HTTP 404 from {url}", url=url, status=404)
        response = self.routes[max(matches, key=len)]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(url)
        return copy.deepcopy(response)


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def tables():
    return load_lookup_tables()


@pytest.fixture
def small_tables():
    return LookupTables.from_dict({
        "version": "test",
        "rec_area_ids": {"yose": 2991},
        "park_names": {"yose": "Yosemite", "deva": "Death Valley", "zion": "Zion"},
        "activity_ids": {"BFF8C027-7C8F-480B-A5F8-CD8CE490BFBA": "Hiking"},
        "planning_tips": {"default": ["Check road conditions"]},
    })
