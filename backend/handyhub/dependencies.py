from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from handyhub.auth import parse_bearer_token
from handyhub.services.booking_flow import BookingHistory, BookingSubmissionFlow
from handyhub.services.catalog_store import ProviderCatalogStore
from handyhub.services.directory_client import DirectoryClient, get_directory_client
from handyhub.services.identity_store import IdentitySession, IdentityStore, get_identity_store


def get_identity_session(
    authorization: Optional[str] = Header(default=None),
    store: IdentityStore = Depends(get_identity_store),
) -> IdentitySession:
    return store.session(token=parse_bearer_token(authorization))


def require_authenticated_user(identity: IdentitySession = Depends(get_identity_session)) -> str:
    user_id = identity.current_user_id()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing bearer token")
    return user_id


def get_catalog_store(client: DirectoryClient = Depends(get_directory_client)) -> ProviderCatalogStore:
    return ProviderCatalogStore(client)


def get_booking_flow(client: DirectoryClient = Depends(get_directory_client)) -> BookingSubmissionFlow:
    return BookingSubmissionFlow(client)


def get_booking_history(client: DirectoryClient = Depends(get_directory_client)) -> BookingHistory:
    return BookingHistory(client)
