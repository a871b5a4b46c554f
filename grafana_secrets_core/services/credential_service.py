"""
Credential lifecycle: issue, renew and revoke Grafana Cloud keys.

Organisation-scoped (Cloud) keys are created and deleted with the admin
key directly. Instance-scoped (Grafana) keys go through a temporary stack
admin key, see ``stack_scope``. The engine never stores the issued token:
the host persists only the lease metadata returned in ``internal_data``.
"""

import uuid
from typing import Optional

from ..config import EngineConfig, get_config
from ..context.operation_context import operation
from ..context.request_context import RequestContext
from ..enums import CredentialKind
from ..exceptions import GrafanaClientError, InternalError, RoleNotFoundError
from ..schemas.config_schema import GrafanaCloudConfig
from ..schemas.credential_schema import IssuedCredential, LeaseMetadata, SecretResponse
from ..schemas.role_schema import RoleEntry
from ..utils.logger import ContextAwareLogger, get_logger
from .client_cache import UpstreamClientCache
from .config_service import ConfigService
from .role_service import RoleService
from .stack_scope import stack_scoped_client


def generate_key_name(role_name: str) -> str:
    """Key names are '<role>_<uuid4>' so every issued key is unique and traceable."""
    return f"{role_name}_{uuid.uuid4()}"


class CredentialService:
    """
    Issues, renews and revokes keys for roles.

    This service provides:
    - Issuance of organisation-scoped and instance-scoped keys
    - Local renewal that re-asserts the role's advisory durations
    - Revocation against the identity recorded at issuance
    """

    def __init__(
        self,
        role_service: RoleService,
        config_service: ConfigService,
        client_cache: UpstreamClientCache,
        engine_config: Optional[EngineConfig] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        self.role_service = role_service
        self.config_service = config_service
        self.client_cache = client_cache
        self.engine_config = engine_config or get_config().engine
        self.logger = logger or get_logger()

    def _resolve_role(self, role_name: str) -> RoleEntry:
        role = self.role_service.get_role(role_name)
        if role is None:
            raise RoleNotFoundError(role_name)
        return role

    def _load_config(self) -> GrafanaCloudConfig:
        return self.config_service.get_config() or GrafanaCloudConfig()

    @operation()
    def issue(self, role_name: str, ctx: RequestContext) -> SecretResponse:
        """
        Create a new key for ``role_name``.

        Args:
            role_name: Name of a stored role
            ctx: Request context bounding the upstream calls

        Returns:
            Lease envelope carrying the token in ``data`` and the lease
            metadata in ``internal_data``

        Raises:
            InvalidConfigurationError: If the role name is empty
            RoleNotFoundError: If the role does not exist
            InternalError: If Grafana Cloud rejected or failed the call
            RequestCancelledError: If the request was cancelled
        """
        role = self._resolve_role(role_name)
        config = self._load_config()
        external_name = generate_key_name(role_name)

        try:
            with self.client_cache.lease(ctx) as client:
                if role.credential_kind is CredentialKind.INSTANCE_SCOPED:
                    credential = self._issue_instance_key(
                        client, ctx, role_name, role, external_name, config
                    )
                else:
                    credential = self._issue_organisation_key(
                        client, ctx, role_name, role, external_name, config
                    )
        except GrafanaClientError as e:
            raise InternalError(
                f"error creating Grafana Cloud token: {e.message}",
                cause=e,
                role_name=role_name,
                credential_kind=role.credential_kind.value,
            ) from e

        self.logger.info(
            "Key issued",
            extra={
                "role_name": role_name,
                "external_name": credential.external_name,
                "external_id": credential.external_id,
                "credential_kind": credential.credential_kind.value,
                "target_instance": credential.target_instance,
            },
        )

        response = SecretResponse(
            data=credential.response_data(),
            internal_data=credential.lease_metadata().to_internal_data(),
        )
        return response.apply_role_ttls(role.ttl, role.max_ttl)

    def _issue_organisation_key(
        self,
        client,
        ctx: RequestContext,
        role_name: str,
        role: RoleEntry,
        external_name: str,
        config: GrafanaCloudConfig,
    ) -> IssuedCredential:
        key = client.create_cloud_api_key(
            ctx, config.organisation, external_name, role.authorization_level
        )
        return IssuedCredential(
            external_id="" if key.id is None else str(key.id),
            external_name=key.name,
            token=key.token,
            credential_kind=CredentialKind.ORGANISATION_SCOPED,
            role=role_name,
            telemetry=config.telemetry_response_data(),
        )

    def _issue_instance_key(
        self,
        client,
        ctx: RequestContext,
        role_name: str,
        role: RoleEntry,
        external_name: str,
        config: GrafanaCloudConfig,
    ) -> IssuedCredential:
        with stack_scoped_client(
            client, ctx, role.target_instance, self.engine_config, self.logger
        ) as scoped_client:
            key = scoped_client.create_api_key(
                ctx, external_name, role.authorization_level, role.ttl
            )
        return IssuedCredential(
            external_id=str(key.id),
            external_name=key.name,
            token=key.key,
            credential_kind=CredentialKind.INSTANCE_SCOPED,
            target_instance=role.target_instance,
            role=role_name,
            telemetry=config.telemetry_response_data(),
        )

    @operation()
    def renew(self, secret: SecretResponse) -> SecretResponse:
        """
        Re-assert the role's advisory durations on an existing lease.

        No upstream call is made; only the host's lease clock moves.

        Raises:
            InternalError: If the lease does not name a role, or the role is gone
        """
        try:
            lease = LeaseMetadata.from_internal_data(secret.internal_data)
        except ValueError as e:
            raise InternalError(f"invalid lease internal data: {e}", cause=e) from e

        if not lease.role:
            raise InternalError("secret is missing role internal data")

        role = self._resolve_role(lease.role)
        renewed = secret.model_copy(deep=True)
        return renewed.apply_role_ttls(role.ttl, role.max_ttl)

    @operation()
    def revoke(self, secret: SecretResponse, ctx: RequestContext) -> None:
        """
        Delete the key recorded in the lease metadata.

        A second revoke of the same key surfaces Grafana Cloud's not-found
        answer as an InternalError; hosts wanting idempotency must check
        ``cause.is_not_found``.

        Raises:
            InternalError: If the lease is malformed or the delete failed
            RequestCancelledError: If the request was cancelled
        """
        try:
            lease = LeaseMetadata.from_internal_data(secret.internal_data)
        except ValueError as e:
            raise InternalError(f"invalid lease internal data: {e}", cause=e) from e

        try:
            with self.client_cache.lease(ctx) as client:
                if lease.credential_kind is CredentialKind.INSTANCE_SCOPED:
                    self._revoke_instance_key(client, ctx, lease)
                else:
                    self._revoke_organisation_key(client, ctx, lease)
        except GrafanaClientError as e:
            raise InternalError(
                f"error revoking {lease.credential_kind.value} key {lease.external_name}: {e.message}",
                cause=e,
                external_name=lease.external_name,
                credential_kind=lease.credential_kind.value,
            ) from e

        self.logger.info(
            "Key revoked",
            extra={
                "external_name": lease.external_name,
                "external_id": lease.external_id,
                "credential_kind": lease.credential_kind.value,
                "target_instance": lease.target_instance,
            },
        )

    def _revoke_organisation_key(self, client, ctx: RequestContext, lease: LeaseMetadata) -> None:
        if not lease.external_name:
            raise InternalError("secret is missing key name internal data")
        config = self._load_config()
        client.delete_cloud_api_key(ctx, config.organisation, lease.external_name)

    def _revoke_instance_key(self, client, ctx: RequestContext, lease: LeaseMetadata) -> None:
        if not lease.target_instance:
            raise InternalError("secret is missing target instance internal data")
        try:
            key_id = int(lease.external_id)
        except ValueError as e:
            raise InternalError(
                f"secret has a non-numeric key id '{lease.external_id}'", cause=e
            ) from e

        with stack_scoped_client(
            client, ctx, lease.target_instance, self.engine_config, self.logger
        ) as scoped_client:
            scoped_client.delete_api_key(ctx, key_id)
