from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..db import get_identity_provider, get_store
from ..identity import IdentityProvider
from ..schemas.account import Account
from ..services.account_service import AccountService, to_actor
from ..services.ticket_service import TicketService
from ..store import DocumentStore
from .errors import Unauthenticated
from .permissions import Actor, check_role
from .roles import Role

bearer = HTTPBearer(auto_error=False)


def get_account_service(
    store: DocumentStore = Depends(get_store),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> AccountService:
    return AccountService(store, identity)


def get_ticket_service(store: DocumentStore = Depends(get_store)) -> TicketService:
    return TicketService(store)


def get_current_account(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    identity: IdentityProvider = Depends(get_identity_provider),
    accounts: AccountService = Depends(get_account_service),
) -> Account:
    if not creds:
        raise Unauthenticated("Not authenticated")
    subject = identity.verify(creds.credentials)
    return accounts.resolve(subject)


def get_current_user(account: Account = Depends(get_current_account)) -> Actor:
    return to_actor(account)


def require_roles(*roles: Role):
    """One gate for a whole role set, e.g. ``require_roles(Role.EMPLOYEE, Role.ADMIN)``."""
    allowed = frozenset(roles)

    def dependency(user: Actor = Depends(get_current_user)) -> Actor:
        check_role(user, allowed).enforce()
        return user

    return dependency


require_admin = require_roles(Role.ADMIN)
