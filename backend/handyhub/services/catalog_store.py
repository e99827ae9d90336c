import logging
from typing import List, Optional, Union

from pydantic import ValidationError

from handyhub.models import CatalogFailed, CatalogLoaded, Provider
from handyhub.services.directory_client import (
    PROVIDERS_COLLECTION,
    DirectoryClient,
    DirectoryClientError,
    DirectoryDocument,
)

logger = logging.getLogger(__name__)


FALLBACK_PROVIDERS: tuple[Provider, ...] = (
    Provider(
        id="1",
        name="Clean & Shine Services",
        service_type="Cleaner",
        rating=4.5,
        city="Middlesbrough",
        phone_number="01642 555 0101",
    ),
    Provider(
        id="2",
        name="SparkPro Electricians",
        service_type="Electrician",
        rating=4.8,
        city="Newcastle",
        phone_number="0191 555 0102",
    ),
    Provider(
        id="3",
        name="QuickFix Plumbing",
        service_type="Plumber",
        rating=4.3,
        city="Leeds",
        phone_number="0113 555 0103",
    ),
    Provider(
        id="4",
        name="HomeCare Cleaning",
        service_type="Cleaner",
        rating=4.1,
        city="York",
    ),
    Provider(
        id="5",
        name="BrightWire Electrical",
        service_type="Electrician",
        rating=4.6,
        city="Durham",
        phone_number="0191 555 0105",
    ),
)


def provider_to_document(provider: Provider) -> dict:
    # The store assigns the id; the body never carries one.
    return provider.model_dump(by_alias=True, exclude={"id"})


def provider_from_document(document: DirectoryDocument) -> Optional[Provider]:
    body = {key: value for key, value in document.data.items() if key != "id"}
    try:
        return Provider.model_validate({**body, "id": document.id})
    except ValidationError:
        logger.warning("Skipping provider document %s: unexpected shape", document.id)
        return None


class ProviderCatalogStore:
    def __init__(self, client: DirectoryClient) -> None:
        self._client = client

    async def load(self) -> Union[CatalogLoaded, CatalogFailed]:
        try:
            documents = await self._client.fetch_all(PROVIDERS_COLLECTION)
        except DirectoryClientError as exc:
            logger.warning("Catalog fetch failed, showing fallback providers: %s", exc)
            return CatalogFailed(error=str(exc), providers=list(FALLBACK_PROVIDERS))

        if not documents:
            return CatalogLoaded(providers=await self._seed_fallback())

        providers: List[Provider] = []
        for document in documents:
            provider = provider_from_document(document)
            if provider is not None:
                providers.append(provider)
        return CatalogLoaded(providers=providers)

    async def _seed_fallback(self) -> List[Provider]:
        """Write the fallback records and return them under the ids the store assigned.

        A record whose write failed keeps its local sequence id.
        """
        logger.info("Provider collection is empty, seeding %d fallback providers", len(FALLBACK_PROVIDERS))
        seeded: List[Provider] = []
        for provider in FALLBACK_PROVIDERS:
            try:
                document_id = await self._client.insert(PROVIDERS_COLLECTION, provider_to_document(provider))
            except DirectoryClientError as exc:
                logger.warning("Seeding provider %r failed: %s", provider.name, exc)
                seeded.append(provider)
                continue
            seeded.append(provider.model_copy(update={"id": document_id}))
        return seeded
