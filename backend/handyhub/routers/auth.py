from fastapi import APIRouter, Depends, HTTPException

from handyhub.dependencies import get_identity_session, require_authenticated_user
from handyhub.models import (
    AuthLoginRequest,
    AuthLoginResponse,
    AuthMeResponse,
    AuthSignupRequest,
    ScreenMessage,
)
from handyhub.screens.auth_screens import LoginController, SignupController
from handyhub.services.identity_store import IdentitySession, IdentityStore, get_identity_store

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=ScreenMessage)
def signup(payload: AuthSignupRequest, identity: IdentitySession = Depends(get_identity_session)):
    outcome = SignupController(identity).sign_up(payload.email, payload.password, payload.confirm_password)
    if outcome.next_screen is None:
        raise HTTPException(status_code=400, detail=outcome.message)
    return outcome


@router.post("/login", response_model=AuthLoginResponse)
def login(payload: AuthLoginRequest, identity: IdentitySession = Depends(get_identity_session)):
    controller = LoginController(identity)
    outcome = controller.login(payload.email, payload.password)
    if controller.signed_in is None:
        status_code = 400 if outcome.message == "Please enter email and password" else 401
        raise HTTPException(status_code=status_code, detail=outcome.message)
    user = controller.signed_in
    return AuthLoginResponse(
        access_token=user.access_token,
        user_id=user.user_id,
        expires_at=user.expires_at,
        message=outcome.message,
    )


@router.post("/logout", response_model=ScreenMessage)
def logout(identity: IdentitySession = Depends(get_identity_session)):
    identity.sign_out()
    return ScreenMessage(message="Signed out", next_screen="login")


@router.get("/me", response_model=AuthMeResponse)
def me(
    user_id: str = Depends(require_authenticated_user),
    store: IdentityStore = Depends(get_identity_store),
):
    return AuthMeResponse(user_id=user_id, email=store.email_for(user_id))
