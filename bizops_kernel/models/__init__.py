"""ORM models for the bizops kernel."""

from bizops_kernel.models.audit_log import AuditAction, AuditLogEntry
from bizops_kernel.models.budget import Budget
from bizops_kernel.models.business import Business
from bizops_kernel.models.customer import Customer
from bizops_kernel.models.data_version import ChangeType, DataVersion
from bizops_kernel.models.partner import Partner, PartnerBusiness, PartnerContentGrant
from bizops_kernel.models.payment import PAYMENT_TRANSITIONS, Payment, PaymentStatus
from bizops_kernel.models.user import User
from bizops_kernel.models.workflow import WorkflowTemplate

__all__ = [
    "AuditAction",
    "AuditLogEntry",
    "Budget",
    "Business",
    "ChangeType",
    "Customer",
    "DataVersion",
    "PAYMENT_TRANSITIONS",
    "Partner",
    "PartnerBusiness",
    "PartnerContentGrant",
    "Payment",
    "PaymentStatus",
    "User",
    "WorkflowTemplate",
]
