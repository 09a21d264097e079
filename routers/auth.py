from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.dependencies import get_auth_gate, require_admin
from app.security import Principal
from app.services import AuthenticationGate

router = APIRouter()


class RegisterBody(BaseModel):
    email: str
    password: str
    role: str
    name: Optional[str] = None


class LoginBody(BaseModel):
    email: str
    password: str


class UnlockBody(BaseModel):
    email: str


def _user_out(user):
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "status": user.status.value,
    }


@router.post("/register", status_code=201)
def register(body: RegisterBody, gate: AuthenticationGate = Depends(get_auth_gate)):
    user = gate.register(body.email, body.password, body.role, name=body.name)
    return _user_out(user)


@router.post("/login")
def login(body: LoginBody, gate: AuthenticationGate = Depends(get_auth_gate)):
    """
    Exchange email/password for a bearer token. Wrong passwords count toward
    the lockout threshold; a locked account answers 423 without checking the
    password.
    """
    token = gate.attempt_login(body.email, body.password)
    return {"access_token": token, "token_type": "bearer"}


@router.get("/status")
def account_status(
    email: str = Query(...),
    gate: AuthenticationGate = Depends(get_auth_gate),
    _: Principal = Depends(require_admin),
):
    view = gate.account_status(email)
    return {"email": email, "status": view.status, "remaining_minutes": view.remaining_minutes}


@router.post("/unlock")
def unlock(
    body: UnlockBody,
    gate: AuthenticationGate = Depends(get_auth_gate),
    _: Principal = Depends(require_admin),
):
    return _user_out(gate.unlock_account(body.email))
