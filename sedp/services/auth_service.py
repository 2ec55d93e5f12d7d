# =======================================================================================
# sedp/services/auth_service.py - Role checks and admin bootstrap
# =======================================================================================
import logging
from typing import Optional

from passlib.context import CryptContext

from ..config import config
from ..models.enums import Role
from ..models.schemas import Identity, UserRole
from ..store import DataStore
from ..utils.exceptions import AuthenticationRequired, PermissionDenied, ValidationError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

BOOTSTRAP_GRANTOR = "bootstrap"


class AuthService:
    """
    Role lookups against ``user_roles``.

    Identity itself comes from the external provider; this service only
    answers "is this user an admin" and manages role grants. The very first
    admin is created by presenting a one-time token whose hash is configured
    in ``ADMIN_BOOTSTRAP_TOKEN_HASH``.
    """

    def __init__(self, store: DataStore, bootstrap_token_hash: Optional[str] = None):
        self.store = store
        self.bootstrap_token_hash = bootstrap_token_hash or config.ADMIN_BOOTSTRAP_TOKEN_HASH

    @staticmethod
    def hash_token(token: str) -> str:
        return pwd_context.hash(token)

    @staticmethod
    def verify_token(token: str, token_hash: str) -> bool:
        try:
            return pwd_context.verify(token, token_hash)
        except ValueError:
            # malformed hash in configuration
            logger.error("ADMIN_BOOTSTRAP_TOKEN_HASH is not a valid passlib hash")
            return False

    # ----------------- queries -----------------

    def is_admin(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        rows = self.store.select(
            "user_roles", filters={"user_id": user_id, "role": Role.ADMIN.value}, limit=1
        )
        return bool(rows)

    def admin_exists(self) -> bool:
        return bool(self.store.select("user_roles", filters={"role": Role.ADMIN.value}, limit=1))

    def require_admin(self, identity: Optional[Identity]) -> Identity:
        if identity is None:
            raise AuthenticationRequired()
        if not self.is_admin(identity.user_id):
            raise PermissionDenied()
        return identity

    # ----------------- grants -----------------

    def claim_first_admin(self, identity: Optional[Identity], token: str) -> UserRole:
        """
        Grant admin to ``identity`` when no admin exists yet and the token
        verifies. Works at most once per deployment: the grant is a single
        insert that only lands while no admin row exists.
        """
        if identity is None:
            raise AuthenticationRequired()

        if not self.bootstrap_token_hash:
            raise PermissionDenied("Admin bootstrap is not configured.")

        if self.admin_exists():
            logger.warning("Bootstrap refused for %s: an admin already exists", identity.user_id)
            raise PermissionDenied("An administrator has already been set up.")

        if not token or not self.verify_token(token, self.bootstrap_token_hash):
            logger.warning("Bootstrap refused for %s: bad token", identity.user_id)
            raise PermissionDenied("Invalid setup token.")

        row = self.store.insert_unless(
            "user_roles",
            {"user_id": identity.user_id, "role": Role.ADMIN.value, "granted_by": BOOTSTRAP_GRANTOR},
            blocking={"role": Role.ADMIN.value},
        )
        if row is None:
            logger.warning("Bootstrap refused for %s: lost the race to another claim", identity.user_id)
            raise PermissionDenied("An administrator has already been set up.")

        logger.info("Bootstrap admin granted to %s (%s)", identity.user_id, identity.email or "no email")
        return UserRole(**row)

    def assign_role(self, caller: Optional[Identity], target_user_id: str, role: str = Role.ADMIN.value) -> UserRole:
        """Give ``target_user_id`` exactly ``role``; admin only."""
        self.require_admin(caller)

        try:
            wanted = Role(role)
        except ValueError:
            raise ValidationError(f"Unknown role: {role}") from None

        # swap the role rows in one transaction; admin rows stay locked meanwhile
        with self.store.transaction() as tx:
            admins = tx.select("user_roles", filters={"role": Role.ADMIN.value}, for_update=True)
            existing = tx.select("user_roles", filters={"user_id": target_user_id})
            for row in existing:
                if row["role"] == wanted.value:
                    return UserRole(**row)

            demoting = any(r["role"] == Role.ADMIN.value for r in existing)
            if wanted is Role.USER and demoting and len(admins) <= 1:
                raise PermissionDenied("Cannot remove the last administrator.")

            tx.delete("user_roles", {"user_id": target_user_id})
            row = tx.insert(
                "user_roles",
                {"user_id": target_user_id, "role": wanted.value, "granted_by": caller.user_id},
            )

        logger.info("Role %s granted to %s by %s", wanted.value, target_user_id, caller.user_id)
        return UserRole(**row)
