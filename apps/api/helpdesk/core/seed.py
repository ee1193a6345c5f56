import logging

from ..identity import IdentityProvider
from ..schemas.account import Account
from ..core.roles import Role
from ..store import DocumentStore, Where
from .clock import utcnow
from .errors import ServiceError
from .settings import settings

logger = logging.getLogger(__name__)


def seed_admin(store: DocumentStore, identity: IdentityProvider) -> str | None:
    """
    DEV bootstrap admin.
    - Skipped when a profile with the same email already exists.
    - Accounts can only be created by an admin, so the first one is seeded here.
    """
    email = settings.ADMIN_EMAIL.strip().lower()
    if store.query("users", [Where("email", "==", email)], limit=1):
        return None

    try:
        uid = identity.create_account(
            email=email,
            password=settings.ADMIN_PASSWORD,
            display_name=settings.ADMIN_DISPLAY_NAME,
        )
    except ServiceError:
        logger.exception("failed to seed admin identity (email=%s)", email)
        return None

    now = utcnow()
    account = Account(
        uid=uid,
        email=email,
        display_name=settings.ADMIN_DISPLAY_NAME,
        role=Role.ADMIN,
        is_active=True,
        claims_pending=True,
        created_at=now,
        updated_at=now,
    )
    store.add("users", account.to_doc(), doc_id=uid)
    identity.set_claims(uid, {"role": Role.ADMIN.value})
    store.update("users", uid, {"claims_pending": False})
    logger.info("seeded admin account %s", email)
    return uid
