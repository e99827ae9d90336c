from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ServiceCategory(str, Enum):
    CLEANER = "Cleaner"
    ELECTRICIAN = "Electrician"
    PLUMBER = "Plumber"
    OTHER = "Other"

    @classmethod
    def from_service_type(cls, service_type: str) -> "ServiceCategory":
        """Map a stored serviceType onto the closed set; anything unrecognised is OTHER."""
        for member in (cls.CLEANER, cls.ELECTRICIAN, cls.PLUMBER):
            if member.value == service_type:
                return member
        return cls.OTHER


ALL_CATEGORIES = "All"


class CategorySelector(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: Optional[ServiceCategory] = None

    @property
    def is_all(self) -> bool:
        return self.category is None

    @property
    def label(self) -> str:
        return ALL_CATEGORIES if self.category is None else self.category.value

    @classmethod
    def parse(cls, value: Optional[str]) -> "CategorySelector":
        raw = (value or ALL_CATEGORIES).strip()
        if raw == ALL_CATEGORIES:
            return cls()
        try:
            return cls(category=ServiceCategory(raw))
        except ValueError:
            allowed = ", ".join([ALL_CATEGORIES, *(member.value for member in ServiceCategory)])
            raise ValueError(f"Unknown category {raw!r}. Allowed: {allowed}") from None


class Provider(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    name: str = ""
    service_type: str = Field(default="", alias="serviceType")
    rating: float = 0.0
    city: str = ""
    phone_number: str = Field(default="", alias="phoneNumber")

    @property
    def category(self) -> ServiceCategory:
        return ServiceCategory.from_service_type(self.service_type)


class ProviderNavigationParams(BaseModel):
    """Flat parameter bag carried from the provider list to the details view."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = "Provider"
    service_type: str = Field(default="", alias="serviceType")
    city: str = ""
    rating: float = 0.0
    phone_number: str = Field(default="", alias="phoneNumber")


class BookingRequest(ProviderNavigationParams):
    """Booking payload; unlike the navigation bag it must name the provider."""

    name: str = Field(min_length=1, pattern=r"\S")


class Booking(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    provider_name: str = Field(alias="providerName")
    provider_service_type: str = Field(alias="providerServiceType")
    provider_city: str = Field(alias="providerCity")
    user_id: str = Field(alias="userId")
    timestamp: int


class CatalogLoading(BaseModel):
    status: Literal["loading"] = "loading"

    @property
    def providers(self) -> list[Provider]:
        return []


class CatalogLoaded(BaseModel):
    status: Literal["loaded"] = "loaded"
    providers: list[Provider]


class CatalogFailed(BaseModel):
    status: Literal["failed"] = "failed"
    error: str
    providers: list[Provider]


CatalogLoadState = Annotated[
    Union[CatalogLoading, CatalogLoaded, CatalogFailed],
    Field(discriminator="status"),
]


class BookingError(BaseModel):
    kind: Literal["not_authenticated", "persistence_failed"]
    detail: str = ""


class BookingResult(BaseModel):
    booking_id: Optional[str] = None
    error: Optional[BookingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.booking_id is not None


class DashboardView(BaseModel):
    state: Literal["loading", "error", "empty", "populated"]
    tab: Literal["providers", "bookings"] = "providers"
    selected_category: str = ALL_CATEGORIES
    search_query: str = ""
    message: Optional[str] = None
    providers: list[Provider] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)


class ProviderDetailsView(BaseModel):
    provider: ProviderNavigationParams
    dial_uri: Optional[str] = None


class BookingSubmitResponse(BaseModel):
    booking_id: str
    message: str
    closed: bool


class ScreenMessage(BaseModel):
    message: str
    next_screen: Optional[Literal["splash", "login", "signup", "dashboard"]] = None


class SplashView(BaseModel):
    title: str
    delay_ms: int
    next_screen: Literal["login"] = "login"


class AuthSignupRequest(BaseModel):
    email: str = ""
    password: str = ""
    confirm_password: str = ""


class AuthLoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class AuthLoginResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    user_id: str
    expires_at: str
    message: str = "Login successful"
    next_screen: Literal["dashboard"] = "dashboard"


class AuthMeResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
