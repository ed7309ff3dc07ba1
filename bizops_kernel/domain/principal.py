"""
Principal -- the authenticated actor of one request.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.

Invariants enforced:
    - Immutable snapshot of the user row taken at resolution time.
    - Never cached across requests; PrincipalResolver builds a new one from
      the durable store every time.
"""

from dataclasses import dataclass
from uuid import UUID

from bizops_kernel.domain.roles import Role


@dataclass(frozen=True)
class Principal:
    """
    Authenticated actor.

    Contract:
        Passed explicitly down the call chain; there is no process-wide
        "current user".
    """

    id: UUID
    email: str
    name: str
    role: Role
    is_active: bool

    @property
    def is_partner(self) -> bool:
        return self.role is Role.PARTNER
