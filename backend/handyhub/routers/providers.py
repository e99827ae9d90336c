from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from handyhub.dependencies import get_booking_flow, get_booking_history, get_catalog_store, get_identity_session
from handyhub.models import DashboardView, ProviderDetailsView
from handyhub.screens.dashboard import DashboardController, navigation_params_for
from handyhub.screens.provider_details import ProviderDetailsController
from handyhub.services.booking_flow import BookingHistory, BookingSubmissionFlow
from handyhub.services.catalog_store import ProviderCatalogStore
from handyhub.services.identity_store import IdentitySession

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("", response_model=DashboardView)
async def dashboard(
    category: Optional[str] = Query(default="All"),
    q: Optional[str] = Query(default=""),
    tab: Literal["providers", "bookings"] = Query(default="providers"),
    catalog_store: ProviderCatalogStore = Depends(get_catalog_store),
    booking_history: BookingHistory = Depends(get_booking_history),
    identity: IdentitySession = Depends(get_identity_session),
):
    controller = DashboardController(catalog_store, booking_history, identity)
    try:
        controller.select_category(category or "All")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    controller.set_search_query(q or "")
    controller.select_tab(tab)
    await controller.activate()
    try:
        return controller.view()
    finally:
        controller.teardown()


@router.get("/{provider_id}", response_model=ProviderDetailsView)
async def provider_details(
    provider_id: str,
    catalog_store: ProviderCatalogStore = Depends(get_catalog_store),
    booking_flow: BookingSubmissionFlow = Depends(get_booking_flow),
    identity: IdentitySession = Depends(get_identity_session),
):
    state = await catalog_store.load()
    provider = next((item for item in state.providers if item.id == provider_id), None)
    if provider is None:
        raise HTTPException(status_code=404, detail="Provider not found")

    params = navigation_params_for(provider)
    details = ProviderDetailsController(params, booking_flow, identity)
    return ProviderDetailsView(provider=params, dial_uri=details.dial_uri())
