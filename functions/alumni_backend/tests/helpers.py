import unittest
import uuid

from fastapi.testclient import TestClient

from alumni_backend.app import create_app
from alumni_backend.config import get_settings
from alumni_backend.dependencies import get_identity_provider, get_kv_store
from alumni_backend.identity import InMemoryIdentityProvider
from alumni_backend.kv import InMemoryKvStore


class ApiTestCase(unittest.TestCase):
    """Wires a fresh app to in-memory backends for each test."""

    def setUp(self):
        self.store = InMemoryKvStore()
        self.identity = InMemoryIdentityProvider()
        self.app = create_app()
        self.app.dependency_overrides[get_kv_store] = lambda: self.store
        self.app.dependency_overrides[get_identity_provider] = lambda: self.identity
        self.client = TestClient(self.app)
        self.prefix = get_settings().api_prefix

    def url(self, path: str) -> str:
        return f"{self.prefix}{path}"

    def make_user(self, role: str = "Alumni", name: str = "Test User") -> tuple[str, dict]:
        """Create an identity plus stored user record; returns (user_id, auth headers)."""
        email = f"{uuid.uuid4().hex[:8]}@example.com"
        user = self.identity.create_user(email, "secret", {"name": name})
        self.store.set(
            f"user:{user.id}",
            {"id": user.id, "email": email, "role": role, "name": name},
        )
        token = self.identity.issue_token(user.id)
        return user.id, {"Authorization": f"Bearer {token}"}
