import logging
import time
from typing import Callable, List, Optional

from pydantic import ValidationError

from handyhub.models import Booking, BookingError, BookingResult, Provider
from handyhub.services.directory_client import (
    BOOKINGS_COLLECTION,
    DirectoryClient,
    DirectoryClientError,
)

logger = logging.getLogger(__name__)


def current_time_millis() -> int:
    return int(time.time() * 1000)


def build_booking_snapshot(provider: Provider, user_id: str, timestamp: int) -> Booking:
    return Booking(
        provider_name=provider.name,
        provider_service_type=provider.service_type,
        provider_city=provider.city,
        user_id=user_id,
        timestamp=timestamp,
    )


class BookingSubmissionFlow:
    """Persists a booking snapshot for the signed-in user.

    Retrying after a reported persistence failure can create a duplicate booking
    when the first write reached the store but its acknowledgement was lost.
    """

    def __init__(self, client: DirectoryClient, clock: Callable[[], int] = current_time_millis) -> None:
        self._client = client
        self._clock = clock

    async def submit_booking(self, provider: Provider, current_user_id: Optional[str]) -> BookingResult:
        if not current_user_id:
            return BookingResult(error=BookingError(kind="not_authenticated", detail="Please log in to book."))

        booking = build_booking_snapshot(provider, current_user_id, self._clock())
        try:
            booking_id = await self._client.insert(
                BOOKINGS_COLLECTION,
                booking.model_dump(by_alias=True, exclude={"id"}),
            )
        except DirectoryClientError as exc:
            logger.warning("Booking write failed for user %s: %s", current_user_id, exc)
            return BookingResult(error=BookingError(kind="persistence_failed", detail=str(exc)))

        logger.info("Booking %s created for user %s (%s)", booking_id, current_user_id, provider.name)
        return BookingResult(booking_id=booking_id)


class BookingHistory:
    def __init__(self, client: DirectoryClient) -> None:
        self._client = client

    async def load_bookings(self, user_id: Optional[str]) -> List[Booking]:
        if not user_id:
            return []
        try:
            documents = await self._client.fetch_by_field(
                BOOKINGS_COLLECTION,
                field="userId",
                value=user_id,
                order_by="timestamp",
                descending=True,
            )
        except DirectoryClientError as exc:
            logger.warning("Booking history fetch failed for user %s: %s", user_id, exc)
            return []

        bookings: List[Booking] = []
        for document in documents:
            try:
                bookings.append(Booking.model_validate({**document.data, "id": document.id}))
            except ValidationError:
                logger.warning("Skipping booking document %s: unexpected shape", document.id)
        return bookings
