"""Selectors for the bizops kernel (read side)."""

from bizops_kernel.selectors.audit_selector import AuditTrailItem, AuditTrailSelector
from bizops_kernel.selectors.entity_selector import EntitySelector
from bizops_kernel.selectors.version_selector import DataVersionSelector, VersionDTO

__all__ = [
    "AuditTrailItem",
    "AuditTrailSelector",
    "DataVersionSelector",
    "EntitySelector",
    "VersionDTO",
]
