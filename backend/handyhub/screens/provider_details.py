from typing import Callable, Optional

from handyhub.models import BookingResult, Provider, ProviderNavigationParams
from handyhub.screens.lifetime import ScreenLifetime
from handyhub.services.booking_flow import BookingSubmissionFlow
from handyhub.services.identity_store import IdentitySession


BOOKING_CREATED_MESSAGE = "Booking created."
LOGIN_REQUIRED_MESSAGE = "Please log in to book."
BOOKING_FAILED_MESSAGE = "Failed to save booking."
PHONE_UNAVAILABLE_MESSAGE = "Phone number not available"


class ProviderDetailsController:
    def __init__(
        self,
        params: ProviderNavigationParams,
        booking_flow: BookingSubmissionFlow,
        identity: IdentitySession,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self.params = params
        self._booking_flow = booking_flow
        self._identity = identity
        self._on_close = on_close
        self._lifetime = ScreenLifetime()
        self.closed = False
        self.message: Optional[str] = None
        self.last_result: Optional[BookingResult] = None

    @property
    def provider(self) -> Provider:
        return Provider(
            name=self.params.name,
            service_type=self.params.service_type,
            city=self.params.city,
            rating=self.params.rating,
            phone_number=self.params.phone_number,
        )

    async def book(self) -> BookingResult:
        ticket = self._lifetime.begin("booking")
        result = await self._booking_flow.submit_booking(self.provider, self._identity.current_user_id())
        if not self._lifetime.is_current("booking", ticket):
            return result

        self.last_result = result
        if result.ok:
            self.message = BOOKING_CREATED_MESSAGE
            self._close()
        elif result.error is not None and result.error.kind == "not_authenticated":
            self.message = LOGIN_REQUIRED_MESSAGE
        else:
            self.message = BOOKING_FAILED_MESSAGE
        return result

    def _close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._lifetime.close()
        if self._on_close is not None:
            self._on_close()

    def dial_uri(self) -> Optional[str]:
        phone = self.params.phone_number.strip()
        return f"tel:{phone}" if phone else None

    def call_provider(self) -> str:
        uri = self.dial_uri()
        if uri is None:
            self.message = PHONE_UNAVAILABLE_MESSAGE
            return PHONE_UNAVAILABLE_MESSAGE
        return uri

    def teardown(self) -> None:
        self._lifetime.close()
