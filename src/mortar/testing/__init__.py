"""Test utilities for mortar applications::

    from mortar.testing import TestClient
"""

from mortar.testing.client import TestClient

__all__ = ["TestClient"]
