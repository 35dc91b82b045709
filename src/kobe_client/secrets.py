from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

try:  # pragma: no cover
    import boto3  # type: ignore
    from botocore.exceptions import BotoCoreError, ClientError  # type: ignore
except Exception:  # pragma: no cover
    boto3 = None
    BotoCoreError = ClientError = None

from .errors import CredentialError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecretRef:
    """An ``{aws_secret = NAME, key = K}`` reference in an inventory."""

    name: str
    key: Optional[str] = None

    @classmethod
    def from_value(cls, value: Any) -> Optional["SecretRef"]:
        if isinstance(value, dict) and "aws_secret" in value:
            key = value.get("key")
            return cls(name=str(value["aws_secret"]), key=None if key is None else str(key))
        return None


class SecretResolver:
    """Replaces secret references in host credentials with their values.

    Each secret is fetched from AWS Secrets Manager at most once per resolver.
    Failures raise :class:`CredentialError` naming the secret.
    """

    def __init__(self, *, region: Optional[str] = None, profile: Optional[str] = None):
        self.region = region
        self.profile = profile
        self._cache: dict[SecretRef, str] = {}
        self._client = None

    def resolve(self, values: dict[str, Any]) -> dict[str, Any]:
        return {k: self._resolve_value(v) for k, v in values.items()}

    def _resolve_value(self, value: Any) -> Any:
        ref = SecretRef.from_value(value)
        if ref is not None:
            return self.lookup(ref)
        if isinstance(value, dict):
            return {k: self._resolve_value(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._resolve_value(v) for v in value]
        return value

    def lookup(self, ref: SecretRef) -> str:
        if ref not in self._cache:
            secret = self._fetch(ref.name)
            self._cache[ref] = secret if ref.key is None else _select_key(ref, secret)
        return self._cache[ref]

    def _fetch(self, name: str) -> str:
        logger.debug("Fetching secret %s", name)
        client = self._secrets_client(name)
        try:
            response = client.get_secret_value(SecretId=name)
        except (ClientError, BotoCoreError) as exc:
            raise CredentialError(name, str(exc)) from exc
        if response.get("SecretString") is not None:
            return response["SecretString"]
        if response.get("SecretBinary") is not None:
            return base64.b64decode(response["SecretBinary"]).decode()
        raise CredentialError(name, "no SecretString or SecretBinary")

    def _secrets_client(self, name: str):
        if self._client is None:
            if boto3 is None:
                raise CredentialError(name, "boto3 is required to resolve aws_secret references")
            if self.profile:
                session = boto3.session.Session(profile_name=self.profile, region_name=self.region)
                self._client = session.client("secretsmanager")
            else:
                self._client = boto3.client("secretsmanager", region_name=self.region)
        return self._client


def _select_key(ref: SecretRef, secret: str) -> str:
    try:
        payload = json.loads(secret)
    except json.JSONDecodeError:
        raise CredentialError(ref.name, f"secret is not JSON, cannot select key '{ref.key}'") from None
    if not isinstance(payload, dict) or ref.key not in payload:
        raise CredentialError(ref.name, f"no key '{ref.key}'")
    return str(payload[ref.key])
