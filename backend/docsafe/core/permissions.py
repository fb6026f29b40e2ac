"""Role-based capability table shared by every route."""
import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional
from uuid import UUID


class Role(str, enum.Enum):
    ADMIN = "admin"
    EMPLEADO = "empleado"


class Capability(str, enum.Enum):
    VIEW_DOCUMENTS = "view_documents"
    UPLOAD_DOCUMENTS = "upload_documents"
    MOVE_DOCUMENTS = "move_documents"
    MANAGE_ALL_DOCUMENTS = "manage_all_documents"
    MANAGE_FOLDERS = "manage_folders"
    VIEW_STATS = "view_stats"
    MANAGE_USERS = "manage_users"


_EMPLOYEE_CAPABILITIES = frozenset(
    {
        Capability.VIEW_DOCUMENTS,
        Capability.UPLOAD_DOCUMENTS,
        Capability.MOVE_DOCUMENTS,
    }
)

ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.EMPLEADO: _EMPLOYEE_CAPABILITIES,
    Role.ADMIN: frozenset(Capability),
}


def capabilities_for(role: str) -> FrozenSet[Capability]:
    try:
        return ROLE_CAPABILITIES[Role(role)]
    except ValueError:
        return frozenset()


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, resolved once per request."""
    id: UUID
    external_id: str
    role: str
    email: Optional[str] = None

    def can(self, capability: Capability) -> bool:
        return capability in capabilities_for(self.role)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
