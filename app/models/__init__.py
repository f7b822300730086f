from app.models.audit import AuditAction, AuditEntry, AuditOutcome  # noqa: F401
from app.models.person import Person  # noqa: F401
from app.models.vault import (  # noqa: F401
    AccessEntry,
    AccessKind,
    AccessStatus,
    Document,
    DocumentTag,
    Visibility,
)
