"""Route test configuration.

Rate limiting is switched off so tests can create properties repeatedly.
"""

from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    with patch("core.ratelimit.limiter.enabled", False):
        yield
