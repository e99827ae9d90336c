from typing import Optional

from handyhub.models import ScreenMessage, SplashView
from handyhub.services.identity_store import IdentityError, IdentitySession, SignedInUser

APP_TITLE = "HandyHub"
SPLASH_DELAY_MS = 3000
MIN_PASSWORD_LENGTH = 6


class SplashController:
    def view(self) -> SplashView:
        return SplashView(title=APP_TITLE, delay_ms=SPLASH_DELAY_MS)


class LoginController:
    def __init__(self, identity: IdentitySession) -> None:
        self._identity = identity
        self.signed_in: Optional[SignedInUser] = None

    def login(self, email: str, password: str) -> ScreenMessage:
        if not email.strip() or not password.strip():
            return ScreenMessage(message="Please enter email and password")
        try:
            self.signed_in = self._identity.sign_in(email.strip(), password)
        except IdentityError as exc:
            return ScreenMessage(message=f"Login failed: {exc}")
        return ScreenMessage(message="Login successful", next_screen="dashboard")

    def go_to_signup(self) -> str:
        return "signup"


class SignupController:
    def __init__(self, identity: IdentitySession) -> None:
        self._identity = identity

    def sign_up(self, email: str, password: str, confirm_password: str) -> ScreenMessage:
        if not email.strip() or not password.strip() or not confirm_password.strip():
            return ScreenMessage(message="Please fill all fields")
        if password != confirm_password:
            return ScreenMessage(message="Passwords do not match")
        if len(password) < MIN_PASSWORD_LENGTH:
            return ScreenMessage(message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        try:
            self._identity.sign_up(email.strip(), password)
        except IdentityError as exc:
            return ScreenMessage(message=f"Sign up failed: {exc}")
        return ScreenMessage(message="Account created successfully", next_screen="login")

    def go_to_login(self) -> str:
        return "login"
