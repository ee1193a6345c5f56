from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping

from ..core.clock import format_timestamp, utcnow
from ..core.concurrency import run_concurrently
from ..core.errors import Forbidden, NotFound, ServiceError
from ..core.field_filter import project_account_update
from ..core.permissions import AccountAction, Actor, decide_account
from ..core.roles import Role
from ..identity import IdentityProvider
from ..schemas.account import Account, AccountCreateIn
from ..store import DocumentStore, Where

logger = logging.getLogger(__name__)

USERS = "users"


def to_actor(account: Account) -> Actor:
    return Actor(id=account.uid, email=account.email, role=account.role)


class AccountService:
    """
    Account lifecycle: creation, profile edits, role grants and deactivation.

    Writes that span the identity provider and the document store are issued
    concurrently and both awaited. There is no rollback when one side fails;
    instead the profile carries ``claims_pending`` until the role claim is
    confirmed, and ``resolve`` re-applies a pending claim on the account's
    next authenticated request.
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.identity = identity
        self.clock = clock

    def _get_or_404(self, uid: str) -> Account:
        doc = self.store.get(USERS, uid)
        if not doc:
            raise NotFound("User not found")
        return Account.from_doc(doc)

    def _now(self) -> str:
        return format_timestamp(self.clock())

    def resolve(self, subject: str) -> Account:
        """Identity resolver: verified subject -> role-bearing account."""
        account = self._get_or_404(subject)
        if not account.is_active:
            raise Forbidden("Account is deactivated")
        if account.claims_pending and account.role is not None:
            account = self._reconcile_claims(account)
        return account

    def _reconcile_claims(self, account: Account) -> Account:
        try:
            self.identity.set_claims(account.uid, {"role": account.role.value})
            self.store.update(USERS, account.uid, {"claims_pending": False})
        except ServiceError:
            logger.exception("claim reconciliation failed for %s", account.uid)
            return account
        logger.info("reconciled pending role claim for %s (%s)", account.uid, account.role.value)
        return account.model_copy(update={"claims_pending": False})

    def create_account(self, actor: Actor, payload: AccountCreateIn) -> Account:
        decide_account(actor, AccountAction.CREATE).enforce()

        uid = self.identity.create_account(
            email=str(payload.email),
            password=payload.password,
            display_name=payload.display_name,
            phone_number=payload.phone_number,
        )
        now = self.clock()
        account = Account(
            uid=uid,
            email=str(payload.email),
            display_name=payload.display_name,
            role=payload.role,
            department=payload.department,
            phone_number=payload.phone_number,
            is_active=True,
            claims_pending=True,
            created_at=now,
            updated_at=now,
        )
        try:
            run_concurrently(
                lambda: self.store.add(USERS, account.to_doc(), doc_id=uid),
                lambda: self.identity.set_claims(uid, {"role": payload.role.value}),
            )
        except ServiceError:
            logger.exception("account %s provisioned incompletely", uid)
            raise

        self.store.update(USERS, uid, {"claims_pending": False})
        logger.info("account %s created by %s with role %s", uid, actor.id, payload.role.value)
        return account.model_copy(update={"claims_pending": False})

    def get_profile(self, actor: Actor) -> Account:
        decide_account(actor, AccountAction.READ_PROFILE, actor.id).enforce()
        return self._get_or_404(actor.id)

    def update_profile(self, actor: Actor, payload: Mapping[str, Any]) -> Account:
        decide_account(actor, AccountAction.UPDATE_PROFILE, actor.id).enforce()
        changes = project_account_update(actor.role, AccountAction.UPDATE_PROFILE, payload)
        self._get_or_404(actor.id)
        self.store.update(USERS, actor.id, {**changes.model_dump(exclude_unset=True), "updated_at": self._now()})
        return self._get_or_404(actor.id)

    def list_employees(self, actor: Actor) -> list[Account]:
        decide_account(actor, AccountAction.LIST_EMPLOYEES).enforce()
        docs = self.store.query(
            USERS,
            [
                Where("role", "in", [Role.EMPLOYEE.value, Role.ADMIN.value]),
                Where("is_active", "==", True),
            ],
            order_by="created_at",
        )
        return [Account.from_doc(d) for d in docs]

    def admin_update_account(self, actor: Actor, uid: str, payload: Mapping[str, Any]) -> Account:
        decide_account(actor, AccountAction.ADMIN_UPDATE, uid).enforce()
        changes = project_account_update(actor.role, AccountAction.ADMIN_UPDATE, payload)
        self._get_or_404(uid)
        self.store.update(USERS, uid, {**changes.model_dump(exclude_unset=True), "updated_at": self._now()})
        return self._get_or_404(uid)

    def grant_role(self, actor: Actor, uid: str, role: Role) -> Account:
        decide_account(actor, AccountAction.GRANT_ROLE, uid).enforce()
        self._get_or_404(uid)
        run_concurrently(
            lambda: self.store.update(
                USERS, uid, {"role": role.value, "claims_pending": True, "updated_at": self._now()}
            ),
            lambda: self.identity.set_claims(uid, {"role": role.value}),
        )
        self.store.update(USERS, uid, {"claims_pending": False})
        logger.info("role %s granted to %s by %s", role.value, uid, actor.id)
        return self._get_or_404(uid)

    def deactivate_account(self, actor: Actor, uid: str) -> None:
        decide_account(actor, AccountAction.DEACTIVATE, uid).enforce()
        self._get_or_404(uid)
        run_concurrently(
            lambda: self.identity.disable(uid),
            lambda: self.store.update(USERS, uid, {"is_active": False, "updated_at": self._now()}),
        )
        logger.info("account %s deactivated by %s", uid, actor.id)
