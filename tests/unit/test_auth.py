"""Unit tests for auth.py module."""

from datetime import datetime, timezone
from urllib.parse import parse_qs

import pytest
import responses

from trusted_publisher.auth import (
    Credential,
    RegistryAuthClient,
    default_key_name,
    mfa_params,
)
from trusted_publisher.errors import AuthenticationError

API_KEY_URL = "https://rubygems.org/api/v1/api_key"
MFA_BODY = (
    "You have enabled multifactor authentication but no OTP code provided. "
    "Please fill it and retry."
)


class TestCredential:
    """Tests for Credential."""

    def test_repr_hides_key(self):
        """Test the API key never shows up in repr."""
        credential = Credential("https://rubygems.org", "rubygems_secret123")

        assert "rubygems_secret123" not in repr(credential)
        assert "rubygems.org" in repr(credential)


class TestMfaParams:
    """Tests for mfa_params and default_key_name."""

    def test_expiry_is_fifteen_minutes(self):
        """Test expires_at is 15 minutes after now."""
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

        params = mfa_params(now)

        assert params == {"expires_at": "2024-05-01 12:15 UTC", "mfa": "false"}

    def test_default_key_name(self, monkeypatch, mocker):
        """Test key name combines host, user and timestamp."""
        monkeypatch.setenv("USER", "alice")
        mocker.patch("trusted_publisher.auth.socket.gethostname", return_value="laptop")

        name = default_key_name(datetime(2024, 5, 1, 12, 0, 30))

        assert name == "laptop-alice-20240501120030"


class TestAuthenticate:
    """Tests for RegistryAuthClient.authenticate."""

    def test_existing_credential_used_as_is(self, prompter_factory):
        """Test a supplied credential skips sign-in."""
        prompter = prompter_factory([])
        client = RegistryAuthClient("https://rubygems.org", prompter)

        credential = client.authenticate("rubygems_key")

        assert credential.key == "rubygems_key"
        assert prompter.questions == []

    def test_env_credential(self, monkeypatch, prompter_factory):
        """Test GEM_HOST_API_KEY is used when present."""
        monkeypatch.setenv("GEM_HOST_API_KEY", "rubygems_env_key")
        client = RegistryAuthClient("https://rubygems.org", prompter_factory([]))

        assert client.authenticate().key == "rubygems_env_key"

    @responses.activate
    def test_sign_in_once_per_host(self, prompter_factory):
        """Test the credential is cached after the first sign-in."""
        responses.add(responses.POST, API_KEY_URL, body="rubygems_new_key", status=200)
        prompter = prompter_factory(["alice@example.com", "hunter2"])
        client = RegistryAuthClient("https://rubygems.org/", prompter)

        first = client.authenticate()
        second = client.authenticate()

        assert first is second
        assert first.key == "rubygems_new_key"
        assert len(responses.calls) == 1


class TestSignIn:
    """Tests for the interactive sign-in."""

    @responses.activate
    def test_sign_in_success(self, prompter_factory):
        """Test sign-in posts a scoped key request with basic auth."""
        responses.add(responses.POST, API_KEY_URL, body="rubygems_new_key\n", status=200)
        prompter = prompter_factory(["alice@example.com", "hunter2"])
        client = RegistryAuthClient("https://rubygems.org", prompter)

        credential = client.sign_in()

        assert credential == Credential("https://rubygems.org", "rubygems_new_key")
        assert prompter.questions == ["Username/email", "Password"]

        request = responses.calls[0].request
        assert request.headers["Authorization"].startswith("Basic ")
        assert "OTP" not in request.headers
        form = parse_qs(request.body)
        assert form["configure_trusted_publishers"] == ["true"]
        assert form["mfa"] == ["false"]
        assert "expires_at" in form
        assert "name" in form
        assert any(line.startswith("Signed in with API key:") for line in prompter.said)

    @responses.activate
    def test_sign_in_rejected(self, prompter_factory):
        """Test rejected credentials raise AuthenticationError with the body."""
        responses.add(
            responses.POST,
            API_KEY_URL,
            body="Invalid username or password",
            status=401,
        )
        client = RegistryAuthClient(
            "https://rubygems.org", prompter_factory(["alice", "wrong"])
        )

        with pytest.raises(AuthenticationError, match="Invalid username or password"):
            client.sign_in()

        assert len(responses.calls) == 1

    @responses.activate
    def test_mfa_challenge_prompts_for_code(self, prompter_factory):
        """Test an MFA challenge asks for a code and retries once with it."""
        responses.add(responses.POST, API_KEY_URL, body=MFA_BODY, status=401)
        responses.add(responses.POST, API_KEY_URL, body="rubygems_mfa_key", status=200)
        prompter = prompter_factory(["alice", "hunter2", "123456"])
        client = RegistryAuthClient("https://rubygems.org", prompter)

        credential = client.sign_in()

        assert credential.key == "rubygems_mfa_key"
        assert prompter.questions == ["Username/email", "Password", "Code"]
        assert MFA_BODY in prompter.said
        assert len(responses.calls) == 2
        assert "OTP" not in responses.calls[0].request.headers
        assert responses.calls[1].request.headers["OTP"] == "123456"
        assert client.otp == "123456"

    @responses.activate
    def test_presupplied_otp_skips_prompt(self, prompter_factory):
        """Test an OTP given up front is sent with the first request."""
        responses.add(responses.POST, API_KEY_URL, body="rubygems_key", status=200)
        prompter = prompter_factory(["alice", "hunter2"])
        client = RegistryAuthClient("https://rubygems.org", prompter, otp="654321")

        client.sign_in()

        assert responses.calls[0].request.headers["OTP"] == "654321"
        assert "Code" not in prompter.questions

    @responses.activate
    def test_wrong_otp_fails(self, prompter_factory):
        """Test a rejected OTP is fatal and not retried again."""
        responses.add(responses.POST, API_KEY_URL, body=MFA_BODY, status=401)
        responses.add(
            responses.POST, API_KEY_URL, body="Your OTP code is incorrect.", status=401
        )
        client = RegistryAuthClient(
            "https://rubygems.org", prompter_factory(["alice", "hunter2", "000000"])
        )

        with pytest.raises(AuthenticationError, match="OTP code is incorrect"):
            client.sign_in()

        assert len(responses.calls) == 2


class TestAttachCredential:
    """Tests for attach_credential."""

    def test_attach_credential(self, prompter_factory):
        """Test the raw key goes into Authorization without touching the input."""
        client = RegistryAuthClient("https://rubygems.org", prompter_factory())
        headers = {"Accept": "application/json"}

        attached = client.attach_credential(headers, Credential("h", "rubygems_key"))

        assert attached == {"Accept": "application/json", "Authorization": "rubygems_key"}
        assert headers == {"Accept": "application/json"}

    def test_attach_credential_with_otp(self, prompter_factory):
        """Test a known OTP is attached alongside the key."""
        client = RegistryAuthClient("https://rubygems.org", prompter_factory(), otp="111111")

        attached = client.attach_credential({}, Credential("h", "rubygems_key"))

        assert attached["OTP"] == "111111"
