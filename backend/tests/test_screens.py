import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from handyhub.models import CatalogFailed, CatalogLoading, ProviderNavigationParams
from handyhub.screens.auth_screens import LoginController, SignupController, SplashController
from handyhub.screens.dashboard import DashboardController
from handyhub.screens.lifetime import ScreenLifetime
from handyhub.screens.provider_details import ProviderDetailsController
from handyhub.services.booking_flow import BookingHistory, BookingSubmissionFlow
from handyhub.services.catalog_store import ProviderCatalogStore
from handyhub.services.directory_client import BOOKINGS_COLLECTION


def _signed_in(identity_store, email="sam@example.com"):
    identity_store.sign_up(email, "secret1")
    session = identity_store.session()
    session.sign_in(email, "secret1")
    return session


def _dashboard(fake_client, session):
    return DashboardController(ProviderCatalogStore(fake_client), BookingHistory(fake_client), session)


def test_lifetime_keeps_only_latest_ticket():
    lifetime = ScreenLifetime()
    first = lifetime.begin("catalog")
    second = lifetime.begin("catalog")
    assert not lifetime.is_current("catalog", first)
    assert lifetime.is_current("catalog", second)
    lifetime.close()
    assert not lifetime.is_current("catalog", second)


def test_dashboard_starts_loading_then_populates(fake_client, identity_store):
    controller = _dashboard(fake_client, identity_store.session())
    assert controller.view().state == "loading"

    asyncio.run(controller.activate())

    view = controller.view()
    assert view.state == "populated"
    assert len(view.providers) == 5
    assert view.selected_category == "All"


def test_dashboard_filters_and_reports_empty(fake_client, identity_store):
    controller = _dashboard(fake_client, identity_store.session())
    asyncio.run(controller.activate())

    controller.select_category("Cleaner")
    assert [p.name for p in controller.view().providers] == ["Clean & Shine Services", "HomeCare Cleaning"]

    controller.set_search_query("york")
    assert [p.name for p in controller.view().providers] == ["HomeCare Cleaning"]

    controller.set_search_query("glasgow")
    view = controller.view()
    assert view.state == "empty"
    assert view.message == "No providers match your search."


def test_dashboard_rejects_unknown_category(fake_client, identity_store):
    controller = _dashboard(fake_client, identity_store.session())
    with pytest.raises(ValueError):
        controller.select_category("Gardener")


def test_dashboard_failure_still_lists_fallback(fake_client, identity_store):
    fake_client.fail_fetch = True
    controller = _dashboard(fake_client, identity_store.session())
    asyncio.run(controller.activate())

    assert isinstance(controller.catalog_state, CatalogFailed)
    view = controller.view()
    assert view.state == "error"
    assert len(view.providers) == 5
    assert view.message


def test_teardown_discards_pending_results(fake_client, identity_store):
    async def scenario():
        gate = asyncio.Event()
        original_fetch_all = fake_client.fetch_all

        async def slow_fetch_all(collection):
            await gate.wait()
            return await original_fetch_all(collection)

        fake_client.fetch_all = slow_fetch_all
        controller = _dashboard(fake_client, identity_store.session())
        task = asyncio.create_task(controller.activate())
        await asyncio.sleep(0)
        controller.teardown()
        gate.set()
        await task
        return controller

    controller = asyncio.run(scenario())

    assert isinstance(controller.catalog_state, CatalogLoading)
    assert controller.view().state == "loading"


def test_bookings_tab_shows_signed_in_history(fake_client, identity_store):
    session = _signed_in(identity_store)
    fake_client.put(
        BOOKINGS_COLLECTION,
        "b1",
        {
            "providerName": "QuickFix Plumbing",
            "providerServiceType": "Plumber",
            "providerCity": "Leeds",
            "userId": session.current_user_id(),
            "timestamp": 5,
        },
    )
    controller = _dashboard(fake_client, session)
    controller.select_tab("bookings")
    asyncio.run(controller.activate())

    view = controller.view()
    assert view.state == "populated"
    assert [b.id for b in view.bookings] == ["b1"]


def test_bookings_tab_empty_for_guest(fake_client, identity_store):
    controller = _dashboard(fake_client, identity_store.session())
    controller.select_tab("bookings")
    asyncio.run(controller.activate())

    view = controller.view()
    assert view.state == "empty"
    assert view.message == "No bookings yet."
    assert not any(call[0] == "fetch_by_field" for call in fake_client.calls)


def test_open_provider_and_logout(fake_client, identity_store):
    session = _signed_in(identity_store)
    controller = _dashboard(fake_client, session)
    asyncio.run(controller.activate())

    params = controller.open_provider(controller.view().providers[2])
    assert params.model_dump(by_alias=True) == {
        "name": "QuickFix Plumbing",
        "serviceType": "Plumber",
        "city": "Leeds",
        "rating": 4.3,
        "phoneNumber": "0113 555 0103",
    }

    assert controller.logout() == "login"
    assert session.current_user_id() is None


def test_details_booking_closes_exactly_once(fake_client, identity_store):
    closes = []
    session = _signed_in(identity_store)
    params = ProviderNavigationParams(name="QuickFix Plumbing", service_type="Plumber", city="Leeds", rating=4.3)
    controller = ProviderDetailsController(
        params, BookingSubmissionFlow(fake_client), session, on_close=lambda: closes.append(True)
    )

    result = asyncio.run(controller.book())
    asyncio.run(controller.book())

    assert result.ok
    assert controller.closed
    assert controller.message == "Booking created."
    assert closes == [True]


def test_details_booking_requires_login(fake_client, identity_store):
    closes = []
    controller = ProviderDetailsController(
        ProviderNavigationParams(), BookingSubmissionFlow(fake_client), identity_store.session(), closes.append
    )

    result = asyncio.run(controller.book())

    assert result.error.kind == "not_authenticated"
    assert controller.message == "Please log in to book."
    assert not controller.closed
    assert fake_client.calls == []


def test_details_booking_failure_keeps_view_open(fake_client, identity_store):
    fake_client.fail_insert = True
    session = _signed_in(identity_store)
    controller = ProviderDetailsController(ProviderNavigationParams(), BookingSubmissionFlow(fake_client), session)

    result = asyncio.run(controller.book())

    assert result.error.kind == "persistence_failed"
    assert controller.message == "Failed to save booking."
    assert not controller.closed

    fake_client.fail_insert = False
    assert asyncio.run(controller.book()).ok
    assert controller.closed


def test_details_defaults_and_dialing(fake_client, identity_store):
    controller = ProviderDetailsController(
        ProviderNavigationParams(), BookingSubmissionFlow(fake_client), identity_store.session()
    )
    assert controller.provider.name == "Provider"
    assert controller.call_provider() == "Phone number not available"

    with_phone = ProviderDetailsController(
        ProviderNavigationParams(phoneNumber="0191 555 0102"),
        BookingSubmissionFlow(fake_client),
        identity_store.session(),
    )
    assert with_phone.call_provider() == "tel:0191 555 0102"


def test_splash_routes_to_login():
    view = SplashController().view()
    assert view.title == "HandyHub"
    assert view.delay_ms == 3000
    assert view.next_screen == "login"


@pytest.mark.parametrize(
    "email,password,confirm,expected",
    [
        ("", "secret1", "secret1", "Please fill all fields"),
        ("sam@example.com", "secret1", "secret2", "Passwords do not match"),
        ("sam@example.com", "abc", "abc", "Password must be at least 6 characters"),
        ("not-an-email", "secret1", "secret1", "Sign up failed: The email address is badly formatted."),
    ],
)
def test_signup_validation(identity_store, email, password, confirm, expected):
    outcome = SignupController(identity_store.session()).sign_up(email, password, confirm)
    assert outcome.message == expected
    assert outcome.next_screen is None


def test_signup_then_login(identity_store):
    signup = SignupController(identity_store.session()).sign_up("kim@example.com", "secret1", "secret1")
    assert signup.message == "Account created successfully"
    assert signup.next_screen == "login"

    duplicate = SignupController(identity_store.session()).sign_up("kim@example.com", "secret1", "secret1")
    assert duplicate.message.startswith("Sign up failed:")

    session = identity_store.session()
    login = LoginController(session)
    assert login.login(" ", "secret1").message == "Please enter email and password"
    assert login.login("kim@example.com", "wrong-pass").message.startswith("Login failed:")

    outcome = login.login("kim@example.com", "secret1")
    assert outcome.message == "Login successful"
    assert outcome.next_screen == "dashboard"
    assert session.current_user_id() == login.signed_in.user_id
