import unittest
from unittest.mock import MagicMock, patch

import requests

from fanslink.auth import SEND_OOB_CODE_URL, FirebaseAuthProvider, InMemoryAuthProvider
from fanslink.errors import BackendError, InvalidTokenError


class InMemoryAuthProviderTests(unittest.TestCase):
    def test_verify_token(self):
        auth = InMemoryAuthProvider(tokens={"t": "uid-1"})
        self.assertEqual(auth.verify_token("t"), "uid-1")
        with self.assertRaises(InvalidTokenError):
            auth.verify_token("other")


class FirebaseAuthProviderTests(unittest.TestCase):
    @patch("fanslink.auth.firebase_auth.verify_id_token")
    def test_verify_token(self, mock_verify):
        mock_verify.return_value = {"uid": "uid-1"}
        self.assertEqual(FirebaseAuthProvider().verify_token("t"), "uid-1")

    @patch("fanslink.auth.firebase_auth.verify_id_token")
    def test_invalid_token(self, mock_verify):
        mock_verify.side_effect = ValueError("malformed")
        with self.assertRaises(InvalidTokenError):
            FirebaseAuthProvider().verify_token("t")

    @patch("fanslink.auth.requests.post")
    def test_password_reset_request(self, mock_post):
        mock_post.return_value = MagicMock()
        FirebaseAuthProvider(web_api_key="key", timeout=5).send_password_reset(
            "alice@example.com"
        )
        mock_post.assert_called_once_with(
            SEND_OOB_CODE_URL,
            params={"key": "key"},
            json={"requestType": "PASSWORD_RESET", "email": "alice@example.com"},
            timeout=5,
        )

    @patch("fanslink.auth.requests.post")
    def test_password_reset_failure(self, mock_post):
        mock_post.return_value.raise_for_status.side_effect = requests.HTTPError("400")
        with self.assertLogs("fanslink.auth", level="ERROR"):
            with self.assertRaises(BackendError):
                FirebaseAuthProvider(web_api_key="key").send_password_reset("a@b.co")

    def test_password_reset_requires_key(self):
        with self.assertRaises(BackendError):
            FirebaseAuthProvider().send_password_reset("a@b.co")


if __name__ == "__main__":
    unittest.main()
