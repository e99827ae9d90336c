from typing import Iterable, List, Optional, Union

from handyhub.models import CategorySelector, Provider


def normalize_query(query: Optional[str]) -> str:
    return (query or "").strip().lower()


def matches_category(provider: Provider, selector: CategorySelector) -> bool:
    if selector.is_all:
        return True
    return provider.category == selector.category


def matches_query(provider: Provider, normalized_query: str) -> bool:
    if not normalized_query:
        return True
    return normalized_query in provider.name.lower() or normalized_query in provider.city.lower()


def filter_providers(
    providers: Iterable[Provider],
    category: Union[CategorySelector, str, None] = None,
    query: Optional[str] = "",
) -> List[Provider]:
    """Return the providers matching the category and the name/city search, in catalog order.

    ``category`` accepts a selector or its label ("All", "Cleaner", ...); an unknown
    label raises ``ValueError``. The query is trimmed and matched case-insensitively
    as a substring of the provider's name or city.

    Every result of a known category has exactly that serviceType. "Other" is the
    exception: it collects providers whose serviceType is outside the known set, so
    results carry their own stored value ("Gardener", "cleaner", ...).
    """
    selector = category if isinstance(category, CategorySelector) else CategorySelector.parse(category)
    normalized = normalize_query(query)
    return [
        provider
        for provider in providers
        if matches_category(provider, selector) and matches_query(provider, normalized)
    ]
