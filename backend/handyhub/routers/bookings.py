from fastapi import APIRouter, Depends, HTTPException

from handyhub.dependencies import get_booking_flow, get_booking_history, get_identity_session
from handyhub.models import Booking, BookingRequest, BookingSubmitResponse
from handyhub.screens.provider_details import ProviderDetailsController
from handyhub.services.booking_flow import BookingHistory, BookingSubmissionFlow
from handyhub.services.identity_store import IdentitySession

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingSubmitResponse)
async def create_booking(
    params: BookingRequest,
    booking_flow: BookingSubmissionFlow = Depends(get_booking_flow),
    identity: IdentitySession = Depends(get_identity_session),
):
    controller = ProviderDetailsController(params, booking_flow, identity)
    result = await controller.book()
    if result.error is not None:
        status_code = 401 if result.error.kind == "not_authenticated" else 502
        raise HTTPException(status_code=status_code, detail=controller.message)
    return BookingSubmitResponse(booking_id=result.booking_id, message=controller.message, closed=controller.closed)


@router.get("", response_model=list[Booking])
async def list_bookings(
    booking_history: BookingHistory = Depends(get_booking_history),
    identity: IdentitySession = Depends(get_identity_session),
):
    return await booking_history.load_bookings(identity.current_user_id())
