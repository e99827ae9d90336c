import asyncio
import logging
from typing import List, Literal

from handyhub.models import (
    Booking,
    CatalogFailed,
    CatalogLoadState,
    CatalogLoading,
    CategorySelector,
    DashboardView,
    Provider,
    ProviderNavigationParams,
)
from handyhub.screens.lifetime import ScreenLifetime
from handyhub.services.booking_flow import BookingHistory
from handyhub.services.catalog_store import ProviderCatalogStore
from handyhub.services.identity_store import IdentitySession
from handyhub.services.provider_filter import filter_providers

logger = logging.getLogger(__name__)

DashboardTab = Literal["providers", "bookings"]

NO_MATCHES_MESSAGE = "No providers match your search."
NO_BOOKINGS_MESSAGE = "No bookings yet."
CATALOG_ERROR_MESSAGE = "Could not load providers. Showing sample providers."


def navigation_params_for(provider: Provider) -> ProviderNavigationParams:
    return ProviderNavigationParams(
        name=provider.name,
        service_type=provider.service_type,
        city=provider.city,
        rating=provider.rating,
        phone_number=provider.phone_number,
    )


class DashboardController:
    def __init__(
        self,
        catalog_store: ProviderCatalogStore,
        booking_history: BookingHistory,
        identity: IdentitySession,
    ) -> None:
        self._catalog_store = catalog_store
        self._booking_history = booking_history
        self._identity = identity
        self._lifetime = ScreenLifetime()
        self.catalog_state: CatalogLoadState = CatalogLoading()
        self.bookings: List[Booking] = []
        self.bookings_loading = True
        self.selected_category = CategorySelector()
        self.search_query = ""
        self.selected_tab: DashboardTab = "providers"

    @property
    def lifetime(self) -> ScreenLifetime:
        return self._lifetime

    async def activate(self) -> None:
        await asyncio.gather(self._load_catalog(), self._load_bookings())

    async def _load_catalog(self) -> None:
        ticket = self._lifetime.begin("catalog")
        state = await self._catalog_store.load()
        if not self._lifetime.is_current("catalog", ticket):
            logger.debug("Dropping catalog result for a closed dashboard")
            return
        self.catalog_state = state

    async def _load_bookings(self) -> None:
        ticket = self._lifetime.begin("bookings")
        bookings = await self._booking_history.load_bookings(self._identity.current_user_id())
        if not self._lifetime.is_current("bookings", ticket):
            return
        self.bookings = bookings
        self.bookings_loading = False

    def teardown(self) -> None:
        self._lifetime.close()

    def select_category(self, label: str) -> None:
        self.selected_category = CategorySelector.parse(label)

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def select_tab(self, tab: DashboardTab) -> None:
        self.selected_tab = tab

    @property
    def visible_providers(self) -> List[Provider]:
        return filter_providers(self.catalog_state.providers, self.selected_category, self.search_query)

    def open_provider(self, provider: Provider) -> ProviderNavigationParams:
        return navigation_params_for(provider)

    def logout(self) -> str:
        self._identity.sign_out()
        return "login"

    def view(self) -> DashboardView:
        common = {
            "tab": self.selected_tab,
            "selected_category": self.selected_category.label,
            "search_query": self.search_query,
        }
        if self.selected_tab == "bookings":
            if self.bookings_loading:
                return DashboardView(state="loading", **common)
            if not self.bookings:
                return DashboardView(state="empty", message=NO_BOOKINGS_MESSAGE, **common)
            return DashboardView(state="populated", bookings=self.bookings, **common)

        if isinstance(self.catalog_state, CatalogLoading):
            return DashboardView(state="loading", **common)
        providers = self.visible_providers
        if isinstance(self.catalog_state, CatalogFailed):
            return DashboardView(state="error", message=CATALOG_ERROR_MESSAGE, providers=providers, **common)
        if not providers:
            return DashboardView(state="empty", message=NO_MATCHES_MESSAGE, **common)
        return DashboardView(state="populated", providers=providers, **common)
