"""ORM models.  Importing this package registers every table on Base.metadata."""

from models.identity_user import IdentityUser  # noqa: F401
from models.profile import Profile  # noqa: F401
from models.license import License  # noqa: F401
from models.pre_generated_account import PreGeneratedAccount  # noqa: F401
from models.active_session import ActiveSession  # noqa: F401
from models.master_credential import MasterCredential  # noqa: F401
from models.user_role import UserRole  # noqa: F401
from models.audit_log import AuditLog  # noqa: F401
