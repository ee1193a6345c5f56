from __future__ import annotations

from contextlib import contextmanager
import logging
import uuid
from typing import Iterator

import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.errors import DependencyFailure, Forbidden, InvalidRequest, NotFound, Unauthenticated
from ..core.security import create_access_token, decode_token, hash_password, verify_password
from ..models.identity import Identity

logger = logging.getLogger(__name__)


class LocalIdentityProvider:
    """
    Identity provider backed by the ``identities`` table.

    Issues HS256 bearer tokens whose ``sub`` is the identity uid and which
    carry the identity's custom claims. A disabled identity can neither log
    in nor present a previously issued token.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, op: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise InvalidRequest("Email already registered") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("identity provider %s failed", op)
            raise DependencyFailure(f"Identity provider {op} failed") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _get_or_404(self, session: Session, subject: str) -> Identity:
        identity = session.get(Identity, subject)
        if not identity:
            raise NotFound("Identity not found")
        return identity

    def verify(self, credential: str) -> str:
        try:
            payload = decode_token(credential)
            subject = str(payload["sub"])
        except (jwt.PyJWTError, KeyError) as exc:
            raise Unauthenticated("Invalid token") from exc

        with self._session("verify") as session:
            identity = session.get(Identity, subject)
            if not identity or identity.disabled:
                raise Unauthenticated("Invalid token")
        return subject

    def create_account(
        self,
        email: str,
        password: str,
        display_name: str,
        phone_number: str | None = None,
    ) -> str:
        uid = uuid.uuid4().hex
        with self._session("create_account") as session:
            session.add(
                Identity(
                    uid=uid,
                    email=email.lower(),
                    display_name=display_name,
                    phone_number=phone_number,
                    password_hash=hash_password(password),
                    disabled=False,
                    claims={},
                )
            )
        return uid

    def set_claims(self, subject: str, claims: dict) -> None:
        with self._session("set_claims") as session:
            identity = self._get_or_404(session, subject)
            identity.claims = dict(claims)
        logger.info("set custom claims for %s: %s", subject, claims)

    def disable(self, subject: str) -> None:
        with self._session("disable") as session:
            identity = self._get_or_404(session, subject)
            identity.disabled = True

    def issue_token(self, email: str, password: str) -> str:
        with self._session("issue_token") as session:
            identity = session.scalar(select(Identity).where(Identity.email == email.lower()))
            if not identity or not verify_password(password, identity.password_hash):
                raise Unauthenticated("Invalid credentials.")
            if identity.disabled:
                raise Forbidden("Account disabled.")
            return create_access_token(identity.uid, identity.claims)
