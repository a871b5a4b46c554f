"""
Service for role definitions stored under ``roles/<name>``.

Role writes are merge-on-write: the supplied fields are applied onto the
stored role and the merged role is validated as a whole before anything
is persisted.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..constants import StoragePath
from ..context.operation_context import operation
from ..enums import CredentialKind
from ..exceptions import (
    InvalidConfigurationError,
    StorageError,
    ValidationError,
    validation_failed,
)
from ..schemas.role_schema import RoleEntry, RoleWrite
from .base_service import BaseService


def role_key(name: str) -> str:
    return f"{StoragePath.ROLES.value}{name}"


class RoleService(BaseService):
    """Creates, reads, lists and deletes roles."""

    def get_role(self, name: str) -> Optional[RoleEntry]:
        """
        Load a role by name.

        Args:
            name: Role name

        Returns:
            The stored role, or None when it does not exist

        Raises:
            InvalidConfigurationError: If the name is empty
        """
        if not name:
            raise InvalidConfigurationError("missing role name")
        return self._load(role_key(name), RoleEntry)

    @operation()
    def write(self, name: str, fields: Dict[str, Any], is_create: bool) -> RoleEntry:
        """
        Merge ``fields`` onto the stored role, validate and persist.

        Args:
            name: Role name
            fields: Raw field data from the request
            is_create: True for a create operation, False for an update

        Returns:
            The role as stored

        Raises:
            ValidationError: If the merged role is invalid; nothing is stored
        """
        if not name:
            raise ValidationError("missing role name", field="name")

        try:
            update = RoleWrite.model_validate(fields or {})
        except PydanticValidationError as e:
            raise ValidationError(f"invalid role fields: {e}", cause=e) from e

        stored = self.get_role(name)
        role = stored.model_copy() if stored is not None else RoleEntry()

        if update.credential_kind is not None:
            try:
                role.credential_kind = CredentialKind(update.credential_kind)
            except ValueError as e:
                raise validation_failed(
                    "credential_kind",
                    update.credential_kind,
                    f"valid values are '{CredentialKind.ORGANISATION_SCOPED.value}' "
                    f"and '{CredentialKind.INSTANCE_SCOPED.value}'",
                    cause=e,
                ) from e
        elif stored is None:
            role.credential_kind = CredentialKind.ORGANISATION_SCOPED

        if update.authorization_level is not None:
            role.authorization_level = update.authorization_level
        elif is_create and not role.authorization_level:
            raise ValidationError("missing authorization_level value", field="authorization_level")

        if role.authorization_level not in role.credential_kind.authorization_levels:
            raise validation_failed(
                "authorization_level",
                role.authorization_level,
                f"not valid for {role.credential_kind.value} keys, valid values are "
                f"{sorted(role.credential_kind.authorization_levels)}",
            )

        if update.target_instance is not None:
            role.target_instance = update.target_instance

        if role.credential_kind is CredentialKind.INSTANCE_SCOPED:
            if not role.target_instance:
                raise ValidationError(
                    "need to specify a target_instance for instance-scoped keys",
                    field="target_instance",
                )
        else:
            role.target_instance = ""

        if update.ttl is not None:
            role.ttl = update.ttl
        if update.max_ttl is not None:
            role.max_ttl = update.max_ttl

        if role.max_ttl != 0 and role.ttl > role.max_ttl:
            raise validation_failed(
                "ttl", role.ttl, f"ttl cannot be greater than max_ttl ({role.max_ttl})"
            )

        self._store(role_key(name), role)
        self.logger.info(
            "Role written",
            extra={
                "role_name": name,
                "credential_kind": role.credential_kind.value,
                "target_instance": role.target_instance,
                "is_create": is_create,
            },
        )
        return role

    def read(self, name: str) -> Optional[Dict[str, Any]]:
        role = self.get_role(name)
        if role is None:
            return None
        return role.to_response_data()

    def list(self) -> List[str]:
        try:
            return self.storage.list(StoragePath.ROLES.value)
        except StorageError as e:
            self._handle_service_exception("list roles", e, StoragePath.ROLES.value)

    @operation()
    def delete(self, name: str) -> None:
        """Remove the role; deleting a missing role is not an error."""
        self._remove(role_key(name))
        self.logger.info("Role deleted", extra={"role_name": name})
