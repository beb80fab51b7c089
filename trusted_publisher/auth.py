"""RubyGems.org authentication, including the MFA challenge."""

import os
import socket
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import requests

from .errors import AuthenticationError
from .prompt import Prompter

API_KEY_SCOPE = "configure_trusted_publishers"
MFA_CHALLENGE_PREFIX = "You have enabled multifactor authentication"
MFA_PARAMS_TTL = timedelta(minutes=15)
REQUEST_TIMEOUT = 30


@dataclass(frozen=True)
class Credential:
    """API key for one registry host. The key is kept out of repr."""

    host: str
    key: str = field(repr=False)


def mfa_params(now: Optional[datetime] = None) -> Dict[str, str]:
    """
    Build the MFA-related fields for a new API key.

    The expiry is a local, conservative guess; the registry enforces its own.
    """
    expires_at = (now or datetime.now(timezone.utc)) + MFA_PARAMS_TTL
    return {
        "expires_at": expires_at.strftime("%Y-%m-%d %H:%M %Z"),
        "mfa": "false",
    }


def default_key_name(now: Optional[datetime] = None) -> str:
    """API key name in the form RubyGems itself uses: host-user-timestamp."""
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    return f"{socket.gethostname()}-{os.getenv('USER', '')}-{stamp}"


class RegistryAuthClient:
    """Obtains and attaches API keys for a RubyGems-compatible registry."""

    def __init__(
        self,
        host: str,
        prompter: Prompter,
        otp: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            host: Registry base URL
            prompter: Used for sign-in and OTP prompts
            otp: One-time password supplied up front, skips the OTP prompt
            session: HTTP session (default: new requests.Session)
        """
        self.host = host.rstrip("/")
        self.prompter = prompter
        self.otp = otp
        self.session = session or requests.Session()
        self._credentials: Dict[str, Credential] = {}

    def api_url(self, path: str) -> str:
        return f"{self.host}/{path.lstrip('/')}"

    def authenticate(self, existing_credential: Optional[str] = None) -> Credential:
        """
        Return a usable credential for the registry host.

        Order: credential already obtained by this client, the supplied
        credential, GEM_HOST_API_KEY, then an interactive sign-in.

        Raises:
            AuthenticationError: If the registry rejects the sign-in
        """
        cached = self._credentials.get(self.host)
        if cached:
            return cached

        key = existing_credential or os.getenv("GEM_HOST_API_KEY")
        credential = Credential(self.host, key) if key else self.sign_in()
        self._credentials[self.host] = credential
        return credential

    def sign_in(self) -> Credential:
        """
        Sign in with username/email and password to mint a scoped API key.

        Raises:
            AuthenticationError: If the registry rejects the credentials or OTP
        """
        self.prompter.say("Enter your RubyGems.org credentials.")
        self.prompter.say(f"Don't have an account yet? Create one at {self.host}/sign_up")

        identifier = self.prompter.ask("Username/email")
        password = self.prompter.ask_secret("Password")

        key_name = default_key_name()
        form = {"name": key_name, API_KEY_SCOPE: "true"}
        form.update(mfa_params())

        response = self._request_api_key(identifier, password, form)
        if self.is_mfa_challenge(response):
            self.handle_mfa_challenge(response)
            response = self._request_api_key(identifier, password, form)

        if response.status_code != 200:
            raise AuthenticationError(
                f"Failed to sign in to {self.host} ({response.status_code}):\n{response.text}"
            )

        self.prompter.say(f"Signed in with API key: {key_name}.")
        return Credential(self.host, response.text.strip())

    @staticmethod
    def is_mfa_challenge(response: requests.Response) -> bool:
        """Whether the registry is asking for a one-time password."""
        return response.status_code == 401 and response.text.startswith(
            MFA_CHALLENGE_PREFIX
        )

    def handle_mfa_challenge(self, response: requests.Response) -> str:
        """
        Ask the operator for a one-time password after a challenge.

        The code is kept for the rest of this client's requests.

        Returns:
            The code entered
        """
        self.prompter.say(response.text.strip())
        self.otp = self.prompter.ask("Code")
        return self.otp

    def attach_credential(
        self, headers: Dict[str, str], credential: Credential
    ) -> Dict[str, str]:
        """
        Return a copy of headers carrying the credential and any OTP.

        RubyGems takes the raw API key as the Authorization value.
        """
        headers = dict(headers)
        headers["Authorization"] = credential.key
        if self.otp:
            headers["OTP"] = self.otp
        return headers

    def _request_api_key(
        self, identifier: str, password: str, form: Dict[str, str]
    ) -> requests.Response:
        headers = {}
        if self.otp:
            headers["OTP"] = self.otp

        return self.session.post(
            self.api_url("api/v1/api_key"),
            auth=(identifier, password),
            data=form,
            headers=headers,
            timeout=REQUEST_TIMEOUT,
        )
