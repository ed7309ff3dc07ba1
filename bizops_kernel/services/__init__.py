"""Services for the bizops kernel (write side)."""

from bizops_kernel.services.audit_log_writer import AuditLogWriter
from bizops_kernel.services.data_version_writer import DataVersionWriter
from bizops_kernel.services.mutation_facade import EntityMutationFacade, MutationResult
from bizops_kernel.services.partner_access_admin import (
    PartnerAccessAdminService,
    PartnerAccessGrant,
)
from bizops_kernel.services.partner_access_resolver import PartnerAccessResolver
from bizops_kernel.services.principal_resolver import PrincipalResolver, SessionVerifier

__all__ = [
    "AuditLogWriter",
    "DataVersionWriter",
    "EntityMutationFacade",
    "MutationResult",
    "PartnerAccessAdminService",
    "PartnerAccessGrant",
    "PartnerAccessResolver",
    "PrincipalResolver",
    "SessionVerifier",
]
