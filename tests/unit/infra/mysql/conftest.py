from contextlib import contextmanager

import pytest


class FakeTunnels:
    """Records tunnel usage; yields ``endpoint`` for every profile."""

    def __init__(self, endpoint=None, error=None):
        self.endpoint = endpoint
        self.error = error
        self.opened = 0
        self.closed = 0

    @contextmanager
    def tunnel_for(self, profile):
        if self.error:
            raise self.error
        self.opened += 1
        try:
            yield self.endpoint
        finally:
            self.closed += 1


@pytest.fixture
def fake_tunnels():
    return FakeTunnels
