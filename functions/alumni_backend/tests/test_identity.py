import unittest
from unittest.mock import MagicMock, patch

import requests

from alumni_backend.identity import (
    IdentityProviderError,
    IdentityServiceUnavailable,
    InMemoryIdentityProvider,
    SupabaseIdentityProvider,
)


def fake_response(status_code, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    response.text = ""
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
    return response


class SupabaseIdentityProviderTests(unittest.TestCase):
    def setUp(self):
        self.provider = SupabaseIdentityProvider(
            url="https://project.supabase.co/",
            service_role_key="service-key",
            anon_key="anon-key",
        )

    def test_get_user_resolves_identity(self):
        with patch.object(self.provider._session, "get") as mock_get:
            mock_get.return_value = fake_response(
                200,
                {"id": "u1", "email": "a@example.com", "user_metadata": {"name": "Ada"}},
            )
            identity = self.provider.get_user("token-123")

        self.assertEqual(identity.id, "u1")
        self.assertEqual(identity.display_name, "Ada")
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], "https://project.supabase.co/auth/v1/user")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer token-123")
        self.assertEqual(kwargs["headers"]["apikey"], "anon-key")

    def test_get_user_rejected_token(self):
        with patch.object(self.provider._session, "get") as mock_get:
            mock_get.return_value = fake_response(401, {"msg": "invalid JWT"})
            self.assertIsNone(self.provider.get_user("bad"))

    def test_get_user_server_error_is_provider_error(self):
        with patch.object(self.provider._session, "get") as mock_get:
            mock_get.return_value = fake_response(500)
            with self.assertRaises(IdentityServiceUnavailable):
                self.provider.get_user("token")

    def test_get_user_connection_error_is_provider_error(self):
        with patch.object(self.provider._session, "get") as mock_get:
            mock_get.side_effect = requests.ConnectionError("down")
            with self.assertRaises(IdentityProviderError) as ctx:
                self.provider.get_user("token")
        self.assertIsInstance(ctx.exception.__cause__, requests.ConnectionError)

    def test_create_user_confirms_email(self):
        with patch.object(self.provider._session, "post") as mock_post:
            mock_post.return_value = fake_response(
                200, {"id": "u2", "email": "b@example.com", "user_metadata": {"role": "Alumni"}}
            )
            identity = self.provider.create_user("b@example.com", "pw", {"role": "Alumni"})

        self.assertEqual(identity.id, "u2")
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://project.supabase.co/auth/v1/admin/users")
        self.assertTrue(kwargs["json"]["email_confirm"])
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer service-key")

    def test_create_user_error_message(self):
        with patch.object(self.provider._session, "post") as mock_post:
            mock_post.return_value = fake_response(
                422, {"msg": "A user with this email address has already been registered"}
            )
            with self.assertRaises(IdentityProviderError) as ctx:
                self.provider.create_user("b@example.com", "pw", {})
        self.assertIn("already been registered", str(ctx.exception))
        self.assertNotIsInstance(ctx.exception, IdentityServiceUnavailable)

    def test_create_user_connection_error(self):
        with patch.object(self.provider._session, "post") as mock_post:
            mock_post.side_effect = requests.Timeout("slow")
            with self.assertRaises(IdentityServiceUnavailable):
                self.provider.create_user("b@example.com", "pw", {})


class InMemoryIdentityProviderTests(unittest.TestCase):
    def test_sign_in_issues_resolvable_token(self):
        provider = InMemoryIdentityProvider()
        user = provider.create_user("c@example.com", "pw", {})
        self.assertIsNone(provider.sign_in("c@example.com", "wrong"))
        token = provider.sign_in("c@example.com", "pw")
        self.assertEqual(provider.get_user(token).id, user.id)
        self.assertIsNone(provider.get_user("unknown"))

    def test_rejects_duplicate_email(self):
        provider = InMemoryIdentityProvider()
        provider.create_user("c@example.com", "pw", {})
        with self.assertRaises(IdentityProviderError):
            provider.create_user("c@example.com", "pw", {})


if __name__ == "__main__":
    unittest.main()
