"""Trusted publisher records and the registry endpoints that manage them."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .auth import REQUEST_TIMEOUT, Credential, RegistryAuthClient
from .errors import PublisherConflictError, RegistryRequestError

JSON_HEADERS = {"Accept": "application/json"}


class TrustedPublisherType(str, Enum):
    """Publisher types understood by the registry."""

    GITHUB_ACTION = "OIDC::TrustedPublisher::GitHubAction"


@dataclass(frozen=True)
class TrustedPublisherSpec:
    """The trusted publisher we want the registry to hold."""

    repository_owner: str
    repository_name: str
    workflow_filename: str
    environment: Optional[str] = None
    type: TrustedPublisherType = TrustedPublisherType.GITHUB_ACTION

    @property
    def attributes(self) -> Dict[str, str]:
        """Publisher attributes, leaving out the ones that are unset."""
        attrs = {
            "repository_name": self.repository_name,
            "repository_owner": self.repository_owner,
            "environment": self.environment,
            "workflow_filename": self.workflow_filename,
        }
        return {k: v for k, v in attrs.items() if v is not None}

    def to_payload(self) -> Dict[str, Any]:
        """Request body for the create call."""
        return {
            "trusted_publisher": self.attributes,
            "trusted_publisher_type": self.type.value,
        }


@dataclass(frozen=True)
class ExistingPublisherRecord:
    """A trusted publisher as returned by the registry."""

    type: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> Optional[str]:
        return self.attributes.get("name")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExistingPublisherRecord":
        return cls(
            type=data.get("trusted_publisher_type", ""),
            attributes=data.get("trusted_publisher") or {},
        )

    def matches(self, spec: TrustedPublisherSpec) -> bool:
        """
        Whether this record is equivalent to spec.

        Only the attributes spec sets are compared, so an unset environment
        matches a record with any environment.
        """
        if self.type != spec.type.value:
            return False
        return all(self.attributes.get(k) == v for k, v in spec.attributes.items())


def find_matching(
    records: List[ExistingPublisherRecord], spec: TrustedPublisherSpec
) -> Optional[ExistingPublisherRecord]:
    """Return the first record equivalent to spec, if any."""
    for record in records:
        if record.matches(spec):
            return record
    return None


class TrustedPublisherRepository:
    """Reads and creates trusted publishers for a gem."""

    def __init__(self, auth_client: RegistryAuthClient, credential: Credential):
        """
        Initialize repository.

        Args:
            auth_client: Client that owns the HTTP session and attaches credentials
            credential: Credential from auth_client.authenticate()
        """
        self.auth_client = auth_client
        self.credential = credential

    def _path(self, gem_name: str) -> str:
        return f"api/v1/gems/{gem_name}/trusted_publishers"

    def list(self, gem_name: str) -> List[ExistingPublisherRecord]:
        """
        List trusted publishers configured for a gem.

        Raises:
            RegistryRequestError: If the registry does not answer 200 with a
                JSON list of publishers
        """
        response = self.auth_client.session.get(
            self.auth_client.api_url(self._path(gem_name)),
            headers=self.auth_client.attach_credential(JSON_HEADERS, self.credential),
            timeout=REQUEST_TIMEOUT,
        )

        if response.status_code != 200:
            raise RegistryRequestError(
                f"Failed to get trusted publishers for {gem_name}",
                response.status_code,
                response.text,
            )

        try:
            items = response.json()
        except ValueError:
            items = None
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise RegistryRequestError(
                f"Unexpected response listing trusted publishers for {gem_name}",
                response.status_code,
                response.text,
            )

        return [ExistingPublisherRecord.from_dict(item) for item in items]

    def create(self, gem_name: str, spec: TrustedPublisherSpec) -> ExistingPublisherRecord:
        """
        Create a trusted publisher for a gem.

        Callers are expected to have checked list() for an equivalent
        record first; ensure() does both.

        Raises:
            RegistryRequestError: If the registry does not answer 201
        """
        headers = dict(JSON_HEADERS)
        headers["Content-Type"] = "application/json"

        response = self.auth_client.session.post(
            self.auth_client.api_url(self._path(gem_name)),
            headers=self.auth_client.attach_credential(headers, self.credential),
            data=json.dumps(spec.to_payload()),
            timeout=REQUEST_TIMEOUT,
        )

        if response.status_code != 201:
            raise RegistryRequestError(
                f"Failed to configure trusted publisher for {gem_name}",
                response.status_code,
                response.text,
            )

        try:
            created = response.json()
        except ValueError:
            created = {}
        if not isinstance(created, dict) or not created:
            created = spec.to_payload()

        return ExistingPublisherRecord.from_dict(created)

    def ensure(self, gem_name: str, spec: TrustedPublisherSpec) -> ExistingPublisherRecord:
        """
        Create spec unless an equivalent publisher already exists.

        The check and the create are separate requests, so a publisher
        configured concurrently between them is not detected.

        Raises:
            PublisherConflictError: If an equivalent publisher exists
            RegistryRequestError: If either request fails
        """
        existing = find_matching(self.list(gem_name), spec)
        if existing is not None:
            raise PublisherConflictError(gem_name, existing)

        return self.create(gem_name, spec)
