from biztech.models.base import Base  # noqa: F401

from biztech.models.account import Account, EmailVerification, PasswordResetToken  # noqa: F401
from biztech.models.listing import Listing  # noqa: F401
from biztech.models.lead import Lead  # noqa: F401
from biztech.models.outbox import OutboxEvent  # noqa: F401
from biztech.models.audit_log import AuditLog  # noqa: F401
from biztech.models.idempotency import IdempotencyKey  # noqa: F401
