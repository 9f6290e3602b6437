"""
Strix Testing - in-process client for exercising applications in tests.

    from strix.testing import TestClient

    client = TestClient(app)
    resp = await client.get("/about")
"""

from .client import TestClient, TestResponse

__all__ = ["TestClient", "TestResponse"]
