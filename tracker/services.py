"""
Service container: one token provider, client and cache per process.
"""

import threading
from dataclasses import dataclass
from typing import Optional

from tracker.hubstaff_auth import HubstaffTokenProvider
from tracker.hubstaff_cache import HubstaffCache
from tracker.hubstaff_client import HubstaffClient


@dataclass
class Services:
    token_provider: HubstaffTokenProvider
    client: HubstaffClient
    cache: HubstaffCache


def build_services() -> Services:
    tokens = HubstaffTokenProvider()
    client = HubstaffClient(tokens)
    return Services(token_provider=tokens, client=client, cache=HubstaffCache(client))


_services: Optional[Services] = None
_lock = threading.Lock()


def get_services() -> Services:
    global _services
    with _lock:
        if _services is None:
            _services = build_services()
        return _services


def set_services(services: Optional[Services]):
    """Swap the container (tests, app shutdown)."""
    global _services
    with _lock:
        _services = services
