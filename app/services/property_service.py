import logging, threading, time
from typing import Callable, Optional, Union

from cachetools import TTLCache
from fastapi import HTTPException

from app.config.settings import settings
from app.database.connection import PROPERTIES
from app.models.property import (
    IdxListing,
    IdxListingPage,
    ListedProperty,
    Property,
    PropertyCreate,
    PropertyFilters,
    PropertyListResponse,
)
from app.services.idx_service import IdxBrokerClient, matches_filters
from app.utils.crud_utils import CrudUtils

logger = logging.getLogger(__name__)

IDX_ID_PREFIX = "idx-"


class ListingCache:
    """In-process, size-bounded cache of IDX results keyed by filter set."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic,
                 max_entries: Optional[int] = None):
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._entries = TTLCache(
            maxsize=max_entries or settings.PROPERTY_CACHE_MAX_ENTRIES,
            ttl=ttl_seconds,
            timer=clock,
        )

    def get(self, key: tuple) -> Optional[IdxListingPage]:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: tuple, page: IdxListingPage):
        with self._lock:
            self._entries[key] = page

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            self._entries.expire()
            return len(self._entries)


listing_cache = ListingCache(settings.PROPERTY_CACHE_TTL_SECONDS)


def to_listed_property(listing: IdxListing) -> ListedProperty:
    return ListedProperty(
        id=f"{IDX_ID_PREFIX}{listing.listing_id}",
        title=f"{listing.address}, {listing.city}, {listing.state}",
        description=listing.description,
        price=listing.price,
        address=listing.address,
        city=listing.city,
        state=listing.state,
        zip_code=listing.zip_code,
        bedrooms=listing.bedrooms,
        bathrooms=listing.bathrooms,
        sqft=listing.sqft,
        property_type=listing.property_type,
        images=listing.images,
        listed_date=listing.listed_date,
        source="idx",
        status="active",
    )


class PropertyService:

    def __init__(self, db, idx: Optional[IdxBrokerClient] = None, cache: Optional[ListingCache] = None):
        self.collection = db.collection(PROPERTIES)
        self.idx = idx or IdxBrokerClient()
        self.cache = cache if cache is not None else listing_cache

    def idx_listings(self, filters: PropertyFilters) -> IdxListingPage:
        key = filters.cache_key()
        page = self.cache.get(key)
        if page is not None:
            logger.info("Serving IDX listings from cache")
            return page

        page = self.idx.fetch_listings(filters)
        # empty results are likely a vendor outage, retry next call
        if page.listings:
            self.cache.put(key, page)
        return page

    def local_properties(self, filters: PropertyFilters):
        properties = [Property(**data) for data in CrudUtils.get_all(self.collection)]
        return [p for p in properties if matches_filters(p, filters)]

    def search(self, filters: PropertyFilters) -> PropertyListResponse:
        return PropertyListResponse(
            your_properties=self.local_properties(filters),
            idx_listings=[to_listed_property(l) for l in self.idx_listings(filters).listings],
        )

    def get_property(self, property_id: str) -> Union[Property, ListedProperty]:
        """Local listing first, then the IDX listing with that id."""
        data = CrudUtils.find_by_id(self.collection, property_id)
        if data:
            return Property(**data)

        listing_id = property_id[len(IDX_ID_PREFIX):] if property_id.startswith(IDX_ID_PREFIX) else property_id
        listing = self.idx.find_listing(listing_id)
        if listing:
            return to_listed_property(listing)

        raise HTTPException(status_code=404, detail="Property not found")

    def create(self, request: PropertyCreate) -> Property:
        record = request.model_dump(mode="json", by_alias=True)
        record.update({"source": "local", "status": "active"})
        created = CrudUtils.create_record(self.collection, record)
        logger.info(f"Property listed: {created['id']} at {request.address}")
        return Property(**created)
