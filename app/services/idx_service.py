import logging
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from app.config.settings import settings
from app.models.property import IdxListing, IdxListingPage, PropertyFilters

logger = logging.getLogger(__name__)

# query keys accepted by /api/idx/listings/search and their IDX Broker names
SEARCH_PARAMS = {
    "city": "city[]",
    "cityId": "city[]",
    "countyId": "county[]",
    "zipCode": "zipcode[]",
    "postalCodeId": "zipcode[]",
    "minPrice": "lp",
    "maxPrice": "hp",
    "bedrooms": "bd",
    "bathrooms": "tb",
    "propertyType": "pt",
}

LISTING_FIELDS = "idxID,address,cityName,state,zipcode,listPrice,bedrooms,totalBaths,sqFt,propType,image,remarksConcat,listDate"


def _number(value, cast=float, default=0):
    if value is None or value == "":
        return default
    try:
        return cast(float(str(value).replace(",", "")))
    except (TypeError, ValueError):
        return default


def _records(payload) -> List[dict]:
    """IDX answers with a list, or with an object keyed by listing id."""
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        if "errors" in payload:
            logger.error(f"IDX Broker reported errors: {payload['errors']}")
            return []
        return [item for item in payload.values() if isinstance(item, dict)]
    return []


def normalize_listing(raw: Dict[str, Any], index: int = 0, prefix: str = "idx") -> IdxListing:
    image = raw.get("image")
    if isinstance(image, list):
        images = [str(i) for i in image if i]
    elif isinstance(image, dict):
        # image payloads keyed by position: {"0": {"url": ...}}
        images = [str(i.get("url")) for i in image.values() if isinstance(i, dict) and i.get("url")]
    else:
        images = [str(image)] if image else []

    return IdxListing(
        listing_id=str(raw.get("idxID") or raw.get("listingID") or f"{prefix}-{index}"),
        address=str(raw.get("address") or "Unknown Address"),
        city=str(raw.get("cityName") or raw.get("city") or "Unknown City"),
        state=str(raw.get("state") or "Unknown State"),
        zip_code=str(raw.get("zipcode") or raw.get("zipCode") or "Unknown"),
        price=_number(raw.get("listPrice") or raw.get("price")),
        bedrooms=_number(raw.get("bedrooms"), int),
        bathrooms=_number(raw.get("totalBaths") or raw.get("bathrooms")),
        sqft=_number(raw.get("sqFt") or raw.get("squareFeet"), int),
        property_type=str(raw.get("propType") or raw.get("propertyType") or "Unknown"),
        images=images,
        description=str(raw.get("remarksConcat") or raw.get("description") or ""),
        listed_date=str(raw.get("listDate") or date.today().isoformat()),
        status=raw.get("propStatus") or raw.get("status"),
        sold_price=_number(raw.get("soldPrice"), default=None),
        sold_date=raw.get("soldDate"),
    )


def matches_filters(listing, filters: PropertyFilters) -> bool:
    """Works for IdxListing and locally stored Property alike."""
    if filters.city and filters.city.lower() not in (listing.city or "").lower():
        return False
    if filters.state and filters.state.lower() != (listing.state or "").lower():
        return False
    if filters.zip_code and filters.zip_code != listing.zip_code:
        return False
    if filters.min_price is not None and listing.price < filters.min_price:
        return False
    if filters.max_price is not None and listing.price > filters.max_price:
        return False
    if filters.bedrooms is not None and listing.bedrooms < filters.bedrooms:
        return False
    if filters.bathrooms is not None and listing.bathrooms < filters.bathrooms:
        return False
    if filters.property_type and filters.property_type.lower() not in listing.property_type.lower():
        return False
    return True


class IdxBrokerClient:
    """
    Thin client over the IDX Broker ``clients/*`` API.

    Every call degrades to an empty result when the key is missing or the
    vendor fails; errors are logged, never raised.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.IDX_BROKER_API_KEY
        self.base_url = (base_url or settings.IDX_BROKER_BASE_URL).rstrip("/")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def headers(self) -> Dict[str, str]:
        return {
            "accesskey": self.api_key or "",
            "outputtype": "json",
        }

    def get(self, endpoint: str, params: Optional[dict] = None, timeout: Optional[float] = None):
        """GET ``clients/<endpoint>``; returns parsed JSON or None."""
        if not self.configured:
            logger.info(f"IDX Broker API key not configured, skipping clients/{endpoint}")
            return None

        url = f"{self.base_url}/clients/{endpoint}"
        try:
            response = requests.get(
                url,
                headers=self.headers(),
                params=params or {},
                timeout=timeout or settings.IDX_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return None
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"IDX Broker request to clients/{endpoint} failed: {e}")
        except ValueError as e:
            logger.error(f"IDX Broker returned invalid JSON for clients/{endpoint}: {e}")
        return None

    # ---- listings ----

    def _page(self, payload, limit: int, prefix: str) -> IdxListingPage:
        listings = [normalize_listing(raw, i, prefix) for i, raw in enumerate(_records(payload))]
        return IdxListingPage(
            listings=listings,
            total_count=len(listings),
            has_more_listings=len(listings) >= limit,
        )

    def fetch_listings(self, filters: Optional[PropertyFilters] = None) -> IdxListingPage:
        """Active listings, filtered client-side."""
        filters = filters or PropertyFilters()
        payload = self.get(
            "listings",
            params={"rf": LISTING_FIELDS},
            timeout=settings.IDX_SEARCH_TIMEOUT_SECONDS,
        )
        listings = [normalize_listing(raw, i) for i, raw in enumerate(_records(payload))]
        matched = [listing for listing in listings if matches_filters(listing, filters)]
        page = matched[filters.offset:filters.offset + filters.limit]
        logger.info(f"IDX listings: {len(listings)} fetched, {len(matched)} matched filters")
        return IdxListingPage(
            listings=page,
            total_count=len(matched),
            has_more_listings=filters.offset + len(page) < len(matched),
        )

    def fetch_featured(self, limit: int = 10) -> IdxListingPage:
        payload = self.get("featured", params={"limit": limit})
        page = self._page(payload, limit, "featured")
        page.has_more_listings = False
        return page

    def fetch_sold_pending(self, status: str = "sold", limit: int = 10) -> IdxListingPage:
        payload = self.get("soldpending", params={
            "limit": limit,
            "status": "Sold" if status == "sold" else "Pending",
        })
        page = self._page(payload, limit, status)
        page.has_more_listings = False
        return page

    def search(self, criteria: Dict[str, Any], limit: int = 10, offset: int = 0) -> IdxListingPage:
        params = {"limit": limit, "offset": offset}
        for key, value in criteria.items():
            params[SEARCH_PARAMS.get(key, key)] = value

        payload = self.get("search", params=params, timeout=settings.IDX_SEARCH_TIMEOUT_SECONDS)
        return self._page(payload, limit, "search")

    def find_listing(self, listing_id: str) -> Optional[IdxListing]:
        for listing in self.fetch_listings(PropertyFilters(limit=500)).listings:
            if listing.listing_id == listing_id:
                return listing
        return None

    # ---- reference data ----

    def _names(self, endpoint: str, *keys: str) -> List[str]:
        payload = self.get(endpoint) or []
        if isinstance(payload, dict):
            payload = list(payload.values())

        names = []
        for item in payload:
            if isinstance(item, dict):
                value = next((item[k] for k in keys if item.get(k)), None)
                if value:
                    names.append(str(value))
            elif item:
                names.append(str(item))
        return names

    def fetch_cities(self) -> List[str]:
        return self._names("cities", "cityName", "name")

    def fetch_counties(self) -> List[str]:
        return self._names("counties", "countyName", "name")

    def fetch_postal_codes(self) -> List[str]:
        return self._names("postalcodes", "zipcode", "postalCode")

    def test_connection(self) -> Dict[str, Any]:
        if not self.configured:
            return {"success": False, "message": "IDX Broker API key is not configured"}

        try:
            response = requests.get(
                f"{self.base_url}/clients/accountinfo",
                headers=self.headers(),
                timeout=settings.IDX_TIMEOUT_SECONDS,
            )
            if response.status_code == 200:
                return {"success": True, "message": "IDX Broker API connection successful"}
            return {"success": False, "message": f"IDX API returned status {response.status_code}"}
        except requests.exceptions.RequestException as e:
            logger.error(f"IDX connection test failed: {e}")
            return {"success": False, "message": f"IDX connection failed: {e}"}
