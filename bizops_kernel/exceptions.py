"""
Typed Exception Hierarchy for the BizOps Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Access control failures must be told apart precisely. A caller that gets a
generic exception has to parse the message to decide between "log in again"
and "not permitted", which is fragile and leaks wording into behavior.

Every error here therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, transport-safe)
  3. Structured DATA as attributes (not just a message string)

    try:
        facade.mutate(principal, AuditAction.UPDATE, "Customer", customer_id)
    except UnauthenticatedError:
        redirect_to_login()
    except ForbiddenError as e:
        respond(code=e.code, entity=e.entity)
    except EntityNotFoundError as e:
        respond(code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BizOpsKernelError (base)
    |
    +-- AccessError
    |   +-- UnauthenticatedError
    |   +-- ForbiddenError
    |
    +-- EntityError
    |   +-- EntityNotFoundError
    |   +-- UnknownEntityError
    |
    +-- ValidationError
    |
    +-- PartnerAccessError
    |   +-- InvalidPartnerAccessError
    |
    +-- PersistenceError
    |
    +-- AuditError
    |   +-- AuditContractError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Access          | UNAUTHENTICATED             | No/invalid session, missing or inactive user
                | FORBIDDEN                   | Authenticated, but the decision is Deny
----------------|-----------------------------|-----------------------------------------
Entity          | ENTITY_NOT_FOUND            | Missing, soft-deleted, or out of partner scope
                | UNKNOWN_ENTITY              | Entity type not in the catalog
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Malformed mutation payload
----------------|-----------------------------|-----------------------------------------
Partner access  | INVALID_PARTNER_ACCESS      | editable/content business ids not a subset
----------------|-----------------------------|-----------------------------------------
Persistence     | PERSISTENCE_ERROR           | Store unreachable or write rejected
----------------|-----------------------------|-----------------------------------------
Audit           | AUDIT_CONTRACT_VIOLATION    | before/after shape wrong for the action
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE on audit or version rows

===============================================================================
DESIGN DECISIONS
===============================================================================

1. NotFound deliberately covers "filtered out by partner scope". Callers
   cannot distinguish an out-of-scope record from a missing one.

2. ForbiddenError and UnauthenticatedError share AccessError so middleware
   can catch both, but they stay distinct types.

3. Nothing in this hierarchy is retried by the kernel.

===============================================================================
"""


class BizOpsKernelError(Exception):
    """
    Base exception for all kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BIZOPS_KERNEL_ERROR"


# Access-related exceptions


class AccessError(BizOpsKernelError):
    """Base exception for authentication and authorization failures."""

    code: str = "ACCESS_ERROR"


class UnauthenticatedError(AccessError):
    """No valid session, user record missing, or user deactivated."""

    code: str = "UNAUTHENTICATED"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Authentication required: {reason}")


class ForbiddenError(AccessError):
    """Authenticated principal is not permitted to perform the operation."""

    code: str = "FORBIDDEN"

    def __init__(
        self,
        actor_id: str,
        entity: str,
        action: str,
        reason: str,
    ):
        self.actor_id = actor_id
        self.entity = entity
        self.action = action
        self.reason = reason
        super().__init__(
            f"Actor {actor_id} may not {action} {entity}: {reason}"
        )


# Entity-related exceptions


class EntityError(BizOpsKernelError):
    """Base exception for entity lookup errors."""

    code: str = "ENTITY_ERROR"


class EntityNotFoundError(EntityError):
    """
    Entity does not exist, is soft-deleted, or lies outside partner scope.

    The three causes are intentionally indistinguishable.
    """

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class UnknownEntityError(EntityError):
    """Entity type is not registered in the entity catalog."""

    code: str = "UNKNOWN_ENTITY"

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"Unknown entity type: {entity}")


# Validation


class ValidationError(BizOpsKernelError):
    """Mutation payload is malformed. Raised before any store mutation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, entity: str, field_errors: list[dict]):
        self.entity = entity
        self.field_errors = field_errors
        super().__init__(
            f"Validation failed for {entity}: {len(field_errors)} error(s)"
        )


# Partner access


class PartnerAccessError(BizOpsKernelError):
    """Base exception for partner scoping errors."""

    code: str = "PARTNER_ACCESS_ERROR"


class InvalidPartnerAccessError(PartnerAccessError):
    """Partner access sets violate the subset invariant."""

    code: str = "INVALID_PARTNER_ACCESS"

    def __init__(self, partner_id: str, field: str, stray_ids: list[str]):
        self.partner_id = partner_id
        self.field = field
        self.stray_ids = stray_ids
        super().__init__(
            f"Partner {partner_id}: {field} contains business ids outside "
            f"business_ids: {', '.join(stray_ids)}"
        )


# Persistence


class PersistenceError(BizOpsKernelError):
    """The durable store was unreachable or rejected a write."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, entity: str, entity_id: str | None, detail: str):
        self.operation = operation
        self.entity = entity
        self.entity_id = entity_id
        self.detail = detail
        super().__init__(
            f"{operation} failed for {entity} {entity_id or '(new)'}: {detail}"
        )


# Audit


class AuditError(BizOpsKernelError):
    """Base exception for audit trail errors."""

    code: str = "AUDIT_ERROR"


class AuditContractError(AuditError):
    """Audit entry before/after snapshots do not match the action."""

    code: str = "AUDIT_CONTRACT_VIOLATION"

    def __init__(self, action: str, reason: str):
        self.action = action
        self.reason = reason
        super().__init__(f"Invalid audit entry for {action}: {reason}")


# Immutability


class ImmutabilityError(BizOpsKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    AuditLogEntry and DataVersion rows are immutable from creation.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
