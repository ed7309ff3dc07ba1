"""
Entity Mutation Facade.

Responsibility:
    The single coordination point every create, update and delete passes
    through.  Sequences: minimum-role check -> partner access -> access
    decision -> load before-state -> mutate -> audit entry -> data version.

Architecture position:
    Kernel > Services -- orchestrator.  Unlike the writers it calls, the
    facade owns commit and rollback on its session.

Invariants enforced:
    - The decision completes, and succeeds, before the store is touched.
      A denied mutation writes nothing (no row, no audit, no version).
    - Read scope is checked before write scope on every existing target;
      out-of-scope targets raise EntityNotFoundError, exactly like missing
      or soft-deleted ones.
    - Every accepted mutation produces one AuditLogEntry; CREATE and UPDATE
      of versioned entities also produce one DataVersion.
    - Payloads are validated before any store mutation.
    - The state a mutation_fn leaves behind is authorized like a payload:
      a changed business_id needs write access there, and a partner may
      not hand a record to another partner.

Atomicity (see Atomicity in domain/policy.py):
    INDEPENDENT -- the primary mutation is committed on its own, then the
        audit entry, then the data version, each in its own commit.  If the
        audit or version write fails, only that write is rolled back; the
        failure is logged (audit_write_failed / version_write_failed) and
        listed in MutationResult.audit_gaps.  The primary mutation stands.
    TRANSACTIONAL -- one commit for all three; any failure rolls back
        everything and raises PersistenceError.

Failure modes:
    - ForbiddenError: action not allowed by policy, role too low, or the
      write decision is Deny (for the original or the resulting business),
      or a partner would reassign the record to another partner.
    - EntityNotFoundError: target missing, soft-deleted, or out of scope.
    - UnknownEntityError: entity type not in the catalog or policy.
    - ValidationError: malformed payload, or a mutation_fn that raised.
    - PersistenceError: the primary mutation (or, in TRANSACTIONAL mode,
      any write) was rejected by the store.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bizops_kernel.domain.clock import Clock, SystemClock
from bizops_kernel.domain.decision import (
    AccessDecision,
    AccessMode,
    DecisionOutcome,
    ResourceRef,
    decide,
)
from bizops_kernel.domain.partner_access import PartnerAccessInfo
from bizops_kernel.domain.policy import AccessPolicySet, Atomicity, EntityPolicy
from bizops_kernel.domain.principal import Principal
from bizops_kernel.domain.request_metadata import RequestMetadata
from bizops_kernel.domain.roles import role_at_least
from bizops_kernel.domain.validation import validate_payload
from bizops_kernel.exceptions import (
    BizOpsKernelError,
    EntityNotFoundError,
    ForbiddenError,
    PersistenceError,
    ValidationError,
)
from bizops_kernel.logging_config import LogContext, get_logger
from bizops_kernel.models.audit_log import AuditAction
from bizops_kernel.models.data_version import ChangeType
from bizops_kernel.models.registry import EntityDescriptor, get_entity
from bizops_kernel.selectors.entity_selector import EntitySelector
from bizops_kernel.services.audit_log_writer import AuditLogWriter
from bizops_kernel.services.data_version_writer import DataVersionWriter
from bizops_kernel.services.partner_access_resolver import PartnerAccessResolver

logger = get_logger("services.mutation_facade")

# CREATE: fn(data) -> new instance.  UPDATE: fn(target, data), in place.
MutationFn = Callable[..., Any]

_VERSIONED_ACTIONS = {
    AuditAction.CREATE: ChangeType.CREATE,
    AuditAction.UPDATE: ChangeType.UPDATE,
}


@dataclass(frozen=True)
class MutationResult:
    """
    Outcome of an accepted mutation.

    Guarantees:
        - data is the record's snapshot after the mutation (the before
          snapshot for a hard DELETE).
        - audit_gaps names the trail writes that failed ("audit",
          "version"); empty when the trail is complete.
    """

    entity: str
    entity_id: UUID
    action: AuditAction
    data: dict
    audit_entry_id: UUID | None
    version_id: UUID | None
    audit_gaps: tuple[str, ...] = ()

    @property
    def trail_complete(self) -> bool:
        return not self.audit_gaps


class EntityMutationFacade:
    """
    Every mutation of a registered entity goes through mutate().

    Contract:
        One facade per request/session.  The principal is passed explicitly;
        partner access is resolved fresh inside each mutate() call.
    """

    def __init__(
        self,
        session: Session,
        policy: AccessPolicySet,
        clock: Clock | None = None,
        *,
        partner_access_resolver: PartnerAccessResolver | None = None,
        audit_writer: AuditLogWriter | None = None,
        version_writer: DataVersionWriter | None = None,
    ):
        self.session = session
        self._policy = policy
        self._clock = clock or SystemClock()
        self._partner_access = partner_access_resolver or PartnerAccessResolver(session)
        self._audit = audit_writer or AuditLogWriter(session, self._clock)
        self._versions = version_writer or DataVersionWriter(session, self._clock)
        self._selector = EntitySelector(session)

    @property
    def atomicity(self) -> Atomicity:
        return self._policy.mutation.atomicity

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def mutate(
        self,
        principal: Principal,
        action: AuditAction | str,
        entity: str,
        entity_id: UUID | None,
        mutation_fn: MutationFn | None = None,
        *,
        payload: Mapping[str, Any] | None = None,
        request_metadata: RequestMetadata | None = None,
    ) -> MutationResult:
        """
        Run one guarded, audited mutation.

        Args:
            principal: The resolved actor.
            action: CREATE, UPDATE, SOFT_DELETE or DELETE.
            entity: Entity type name, e.g. "Customer".
            entity_id: Target id; None (or a caller-chosen id) for CREATE.
            mutation_fn: Optional custom mutation for CREATE / UPDATE.
                CREATE: fn(data) returns the new, unsaved instance.
                UPDATE: fn(target, data) changes target in place.
                Without it, CREATE builds model(**data) and UPDATE assigns
                each payload field.
            payload: Field values for CREATE / UPDATE.
            request_metadata: Method, path, IP and user agent for the audit
                entry.

        Returns:
            MutationResult.
        """
        try:
            action = AuditAction(action)
        except ValueError:
            raise ValidationError(
                entity, [{"field": "action", "message": f"unknown action {action!r}"}]
            ) from None

        descriptor = get_entity(entity)
        entity_policy = self._policy.policy_for(entity)

        if mutation_fn is not None and action not in _VERSIONED_ACTIONS:
            raise ValidationError(
                entity,
                [{"field": "mutation_fn", "message": f"not supported for {action.value}"}],
            )

        with LogContext.bind(
            actor_id=str(principal.id),
            entity=entity,
            entity_id=str(entity_id) if entity_id is not None else None,
        ):
            logger.info("mutation_started", extra={"action": action.value})
            return self._mutate(
                principal,
                action,
                descriptor,
                entity_policy,
                entity_id,
                mutation_fn,
                payload,
                request_metadata,
            )

    # ------------------------------------------------------------------
    # Decision helpers
    # ------------------------------------------------------------------

    def _forbid(
        self, principal: Principal, entity: str, action: AuditAction, reason: str
    ) -> None:
        logger.warning(
            "access_denied",
            extra={"action": action.value, "reason": reason, "role": principal.role.value},
        )
        raise ForbiddenError(str(principal.id), entity, action.value, reason)

    def _decide(
        self,
        principal: Principal,
        access: PartnerAccessInfo | None,
        entity_policy: EntityPolicy,
        business_id: UUID | None,
        mode: AccessMode,
    ) -> AccessDecision:
        return decide(
            principal,
            access,
            ResourceRef(
                entity=entity_policy.entity,
                business_id=business_id,
                content_type=entity_policy.content_type,
                mode=mode,
            ),
        )

    def _authorize_write(
        self,
        principal: Principal,
        access: PartnerAccessInfo | None,
        entity_policy: EntityPolicy,
        action: AuditAction,
        business_id: UUID | None,
    ) -> None:
        decision = self._decide(principal, access, entity_policy, business_id, AccessMode.WRITE)
        if decision.denied:
            self._forbid(principal, entity_policy.entity, action, decision.reason.value)

    def _authorize_owner(
        self,
        principal: Principal,
        access: PartnerAccessInfo | None,
        entity: str,
        action: AuditAction,
        partner_id: UUID | None,
        current_partner_id: UUID | None,
    ) -> None:
        """A partner may keep a record's partner_id or set it to its own, nothing else."""
        if access is None or partner_id == current_partner_id:
            return
        if partner_id != access.partner_id:
            self._forbid(principal, entity, action, "partner_reassignment")

    def _authorize_outcome(
        self,
        principal: Principal,
        access: PartnerAccessInfo | None,
        entity_policy: EntityPolicy,
        action: AuditAction,
        target: Any,
        authorized_businesses: set,
        current_partner_id: UUID | None,
    ) -> None:
        """Re-check the record as the mutation left it, before it is flushed."""
        business_id = getattr(target, "business_id", None)
        if business_id not in authorized_businesses:
            self._authorize_write(principal, access, entity_policy, action, business_id)
        if hasattr(type(target), "partner_id"):
            self._authorize_owner(
                principal,
                access,
                entity_policy.entity,
                action,
                getattr(target, "partner_id", None),
                current_partner_id,
            )

    def _load_visible_target(
        self,
        principal: Principal,
        access: PartnerAccessInfo | None,
        descriptor: EntityDescriptor,
        entity_policy: EntityPolicy,
        action: AuditAction,
        entity_id: UUID | None,
    ) -> Any:
        if entity_id is None:
            raise EntityNotFoundError(descriptor.name, "(none)")

        target = self._selector.find_first(descriptor.model, entity_id)
        if target is None:
            raise EntityNotFoundError(descriptor.name, str(entity_id))

        business_id = getattr(target, "business_id", None)
        read = self._decide(principal, access, entity_policy, business_id, AccessMode.READ)
        if read.denied:
            logger.warning(
                "access_denied",
                extra={"action": action.value, "reason": read.reason.value, "mode": "read"},
            )
            raise EntityNotFoundError(descriptor.name, str(entity_id))

        if read.outcome is DecisionOutcome.SCOPE:
            scoped = self._selector.find_first(descriptor.model, entity_id, read.scope)
            if scoped is None:
                logger.warning(
                    "access_denied",
                    extra={"action": action.value, "reason": "outside_scope", "mode": "read"},
                )
                raise EntityNotFoundError(descriptor.name, str(entity_id))

        return target

    # ------------------------------------------------------------------
    # Sequencing
    # ------------------------------------------------------------------

    def _mutate(
        self,
        principal: Principal,
        action: AuditAction,
        descriptor: EntityDescriptor,
        entity_policy: EntityPolicy,
        entity_id: UUID | None,
        mutation_fn: MutationFn | None,
        payload: Mapping[str, Any] | None,
        request_metadata: RequestMetadata | None,
    ) -> MutationResult:
        entity = descriptor.name

        rule = entity_policy.rule_for(action)
        if rule is None:
            self._forbid(principal, entity, action, "action_not_permitted")
        if not role_at_least(principal.role, rule.min_role):
            self._forbid(principal, entity, action, f"requires_{rule.min_role.value.lower()}")

        access = self._partner_access.resolve(principal)
        allowed_fields = frozenset(
            attr.key for attr in descriptor.model.__mapper__.column_attrs
        )

        before: dict | None = None
        target: Any = None
        current_partner_id: UUID | None = None

        if action is AuditAction.CREATE:
            data = validate_payload(
                entity,
                payload,
                creating=True,
                allowed_fields=allowed_fields,
                now=self._clock.now(),
            )
            authorized_businesses = {data.get("business_id")}
            self._authorize_write(
                principal, access, entity_policy, action, data.get("business_id")
            )
            if "partner_id" in allowed_fields:
                self._authorize_owner(
                    principal, access, entity, action, data.get("partner_id"), None
                )
        else:
            target = self._load_visible_target(
                principal, access, descriptor, entity_policy, action, entity_id
            )
            current_business = getattr(target, "business_id", None)
            current_partner_id = getattr(target, "partner_id", None)
            authorized_businesses = {current_business}
            self._authorize_write(principal, access, entity_policy, action, current_business)
            data = {}
            if action is AuditAction.UPDATE:
                data = validate_payload(
                    entity,
                    payload,
                    creating=False,
                    allowed_fields=allowed_fields,
                    current=target,
                    now=self._clock.now(),
                )
                new_business = data.get("business_id")
                if new_business is not None and new_business != current_business:
                    self._authorize_write(principal, access, entity_policy, action, new_business)
                    authorized_businesses.add(new_business)
                if "partner_id" in data:
                    self._authorize_owner(
                        principal, access, entity, action, data["partner_id"], current_partner_id
                    )
            elif payload:
                raise ValidationError(
                    entity, [{"field": "payload", "message": f"not accepted for {action.value}"}]
                )
            if action is AuditAction.SOFT_DELETE and not entity_policy.soft_delete:
                raise ValidationError(
                    entity, [{"field": "action", "message": "entity does not support soft delete"}]
                )
            before = descriptor.snapshot(target)

        transactional = self.atomicity is Atomicity.TRANSACTIONAL

        # Primary mutation
        try:
            target = self._apply(action, descriptor, target, data, entity_id, mutation_fn)
            if action in _VERSIONED_ACTIONS:
                self._authorize_outcome(
                    principal,
                    access,
                    entity_policy,
                    action,
                    target,
                    authorized_businesses,
                    current_partner_id,
                )
            self.session.flush()
            entity_id = target.id
            result_data = before if action is AuditAction.DELETE else descriptor.snapshot(target)
            if not transactional:
                self.session.commit()
        except BizOpsKernelError:
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error(
                "mutation_failed",
                extra={"action": action.value, "stage": "primary"},
                exc_info=True,
            )
            raise PersistenceError(
                "mutation", entity, str(entity_id) if entity_id else None, str(exc)
            ) from exc
        except Exception as exc:
            self.session.rollback()
            logger.error(
                "mutation_failed",
                extra={"action": action.value, "stage": "mutation_fn"},
                exc_info=True,
            )
            raise ValidationError(
                entity, [{"field": "mutation_fn", "message": str(exc)}]
            ) from exc

        after = None if action in (AuditAction.SOFT_DELETE, AuditAction.DELETE) else result_data
        gaps: list[str] = []

        # Audit entry
        audit_entry_id = None
        try:
            entry = self._audit.write(
                user_id=principal.id,
                action=action,
                entity=entity,
                entity_id=entity_id,
                before=before,
                after=after,
                request_metadata=request_metadata,
            )
            audit_entry_id = entry.id
            if not transactional:
                self.session.commit()
        except SQLAlchemyError as exc:
            self._trail_failure("audit", action, entity, entity_id, exc, transactional)
            gaps.append("audit")

        # Data version
        version_id = None
        change_type = _VERSIONED_ACTIONS.get(action)
        if change_type is not None and entity_policy.versioned:
            try:
                version = self._versions.create(
                    entity=entity,
                    entity_id=entity_id,
                    data=result_data,
                    changed_by=principal.id,
                    change_type=change_type,
                )
                version_id = version.id
                if not transactional:
                    self.session.commit()
            except SQLAlchemyError as exc:
                self._trail_failure("version", action, entity, entity_id, exc, transactional)
                gaps.append("version")

        if transactional:
            try:
                self.session.commit()
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.error("mutation_failed", extra={"stage": "commit"}, exc_info=True)
                raise PersistenceError("mutation", entity, str(entity_id), str(exc)) from exc

        logger.info(
            "mutation_committed",
            extra={
                "action": action.value,
                "committed_entity_id": str(entity_id),
                "audit_entry_id": str(audit_entry_id) if audit_entry_id else None,
                "version_id": str(version_id) if version_id else None,
                "audit_gaps": gaps,
                "atomicity": self.atomicity.value,
            },
        )

        return MutationResult(
            entity=entity,
            entity_id=entity_id,
            action=action,
            data=result_data,
            audit_entry_id=audit_entry_id,
            version_id=version_id,
            audit_gaps=tuple(gaps),
        )

    def _trail_failure(
        self,
        stage: str,
        action: AuditAction,
        entity: str,
        entity_id: UUID,
        exc: SQLAlchemyError,
        transactional: bool,
    ) -> None:
        """Roll back a failed audit/version write; re-raise in TRANSACTIONAL mode."""
        self.session.rollback()
        if transactional:
            logger.error(
                "mutation_failed",
                extra={"action": action.value, "stage": stage},
                exc_info=True,
            )
            raise PersistenceError(f"{stage}_write", entity, str(entity_id), str(exc)) from exc
        logger.error(
            f"{stage}_write_failed",
            extra={"action": action.value, "failed_entity_id": str(entity_id)},
            exc_info=True,
        )

    def _apply(
        self,
        action: AuditAction,
        descriptor: EntityDescriptor,
        target: Any,
        data: dict,
        entity_id: UUID | None,
        mutation_fn: MutationFn | None,
    ) -> Any:
        """Perform the store mutation itself.  Returns the affected instance."""
        if action is AuditAction.CREATE:
            if mutation_fn is not None:
                target = mutation_fn(data)
            else:
                target = descriptor.model(**data)
            if entity_id is not None:
                target.id = entity_id
            self.session.add(target)
        elif action is AuditAction.UPDATE:
            if mutation_fn is not None:
                mutation_fn(target, data)
            else:
                for field, value in data.items():
                    setattr(target, field, value)
        elif action is AuditAction.SOFT_DELETE:
            target.deleted_at = self._clock.now()
        else:
            self.session.delete(target)
        return target
