"""
BizOps Kernel - access control, audit and versioning core

The guarded core of a multi-tenant business-management backend:
- Per-request principal resolution (fail closed)
- Partner scoping by business and content type
- Pure allow / deny / scope access decisions
- Append-only audit log with before/after snapshots
- Point-in-time data versions for historical reconstruction
"""

__version__ = "0.1.0"
