from .user import User  # noqa: F401
from .client import Client  # noqa: F401
from .kyc_document import KycDocument  # noqa: F401
from .aml_screening import AmlScreening  # noqa: F401
from .kyc_audit_log import KycAuditLog  # noqa: F401
