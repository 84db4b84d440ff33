"""Store list refresh from the API into the local cache"""
from shelfprice.offline.api_client import PriceApiClient
from shelfprice.offline.local_cache import LocalPriceCache


async def sync_stores_to_local(api: PriceApiClient, cache: LocalPriceCache) -> int:
    response = await api.list_stores()
    return await cache.upsert_stores(response.stores)
