"""
Billing owner resolution.

Every record carries the id of the root payer whose subscription covers it.
A record created by someone inherits the creator's billing owner; a record
created by nobody (self-signup) is its own billing owner.
"""

from typing import Optional, TypeVar

from pydantic import BaseModel

from common.core.exceptions import InvalidArgumentError

ModelType = TypeVar("ModelType", bound=BaseModel)


def resolve_billing_owner_id(
    creator_billing_owner_id: Optional[str], new_entity_id: Optional[str]
) -> str:
    """
    Billing owner for a new record.

    Args:
        creator_billing_owner_id: The creator's billing owner, None for self-signup
        new_entity_id: Id of the record being created

    Raises:
        InvalidArgumentError: If both ids are empty
    """
    if creator_billing_owner_id:
        return creator_billing_owner_id
    if new_entity_id:
        return new_entity_id
    raise InvalidArgumentError(
        "Cannot resolve billing owner: neither creator billing owner nor entity id given"
    )


def with_billing_owner(entity: ModelType, billing_owner_id: Optional[str]) -> ModelType:
    """Copy of entity with billing_owner_id set."""
    if not billing_owner_id:
        raise InvalidArgumentError("billing_owner_id is required")
    return entity.model_copy(update={"billing_owner_id": billing_owner_id})
