from fastapi import APIRouter, Body, Depends

from ..core.current_user import get_account_service, get_current_user, require_admin
from ..core.permissions import Actor
from ..db import get_identity_provider
from ..identity import IdentityProvider
from ..schemas.account import AccountCreateIn, AccountListOut, AccountOut, RoleGrantIn
from ..schemas.auth import LoginIn, TokenOut
from ..services.account_service import AccountService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, identity: IdentityProvider = Depends(get_identity_provider)):
    return TokenOut(access_token=identity.issue_token(str(payload.email), payload.password))


@router.post("/users", response_model=AccountOut, status_code=201)
def create_user(
    payload: AccountCreateIn,
    accounts: AccountService = Depends(get_account_service),
    user: Actor = Depends(require_admin),
):
    return AccountOut(user=accounts.create_account(user, payload))


@router.get("/profile", response_model=AccountOut)
def get_profile(
    accounts: AccountService = Depends(get_account_service),
    user: Actor = Depends(get_current_user),
):
    return AccountOut(user=accounts.get_profile(user))


@router.put("/profile", response_model=AccountOut)
def update_profile(
    payload: dict = Body(...),
    accounts: AccountService = Depends(get_account_service),
    user: Actor = Depends(get_current_user),
):
    return AccountOut(user=accounts.update_profile(user, payload))


@router.get("/employees", response_model=AccountListOut)
def list_employees(
    accounts: AccountService = Depends(get_account_service),
    user: Actor = Depends(require_admin),
):
    employees = accounts.list_employees(user)
    return AccountListOut(employees=employees, count=len(employees))


@router.put("/users/{uid}", response_model=AccountOut)
def admin_update_user(
    uid: str,
    payload: dict = Body(...),
    accounts: AccountService = Depends(get_account_service),
    user: Actor = Depends(require_admin),
):
    return AccountOut(user=accounts.admin_update_account(user, uid, payload))


@router.patch("/users/{uid}/role", response_model=AccountOut)
def grant_role(
    uid: str,
    payload: RoleGrantIn,
    accounts: AccountService = Depends(get_account_service),
    user: Actor = Depends(require_admin),
):
    return AccountOut(user=accounts.grant_role(user, uid, payload.role))


@router.delete("/users/{uid}")
def deactivate_user(
    uid: str,
    accounts: AccountService = Depends(get_account_service),
    user: Actor = Depends(require_admin),
):
    accounts.deactivate_account(user, uid)
    return {"message": "User deactivated successfully"}
