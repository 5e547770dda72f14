import logging, math, random
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from fastapi import HTTPException
from google.cloud.firestore import FieldFilter

from app.database.connection import CMA_REPORTS
from app.models.cma import (
    CmaComparable,
    CmaMarketInsight,
    CmaPricingAdjustment,
    CmaReport,
    CmaRequest,
    CmaStatus,
)
from app.services.idx_service import IdxBrokerClient

logger = logging.getLogger(__name__)

BASE_PRICE_PER_SQFT = 250
BEDROOM_ADJUSTMENT = 10000
BATHROOM_ADJUSTMENT = 7500
SOLD_LISTINGS_LIMIT = 50


# ****************************************************
#  Valuation
# ****************************************************

def base_price(subject: CmaRequest) -> float:
    return subject.sqft * BASE_PRICE_PER_SQFT


def similarity_score(subject: CmaRequest, comparable: CmaComparable) -> float:
    score = 1.0
    score -= abs(subject.bedrooms - comparable.bedrooms) * 0.1
    score -= abs(subject.bathrooms - comparable.bathrooms) * 0.1
    score -= abs(subject.sqft - comparable.sqft) / subject.sqft * 0.5

    if subject.year_built and comparable.year_built:
        # per decade
        score -= abs(subject.year_built - comparable.year_built) / 10 * 0.05

    return max(0.0, min(1.0, score))


def adjusted_price(subject: CmaRequest, comparable: CmaComparable) -> float:
    adjustments = (
        (subject.bedrooms - comparable.bedrooms) * BEDROOM_ADJUSTMENT
        + (subject.bathrooms - comparable.bathrooms) * BATHROOM_ADJUSTMENT
        + (subject.sqft - comparable.sqft) * comparable.price_per_sqft
    )
    return round(comparable.sale_price + adjustments)


def estimate_value(subject: CmaRequest, comparables: List[CmaComparable],
                   now: Optional[datetime] = None) -> Tuple[float, float]:
    """Similarity-weighted value and a 0..1 confidence score."""
    if not comparables:
        return base_price(subject), 0.1

    weight_sum = sum(comp.similarity for comp in comparables)
    if weight_sum > 0:
        value = round(sum(comp.adjusted_price * comp.similarity for comp in comparables) / weight_sum)
    else:
        value = round(sum(comp.adjusted_price for comp in comparables) / len(comparables))

    now = now or datetime.now(timezone.utc)
    avg_similarity = weight_sum / len(comparables)
    avg_age_months = sum(
        (now - comp.sale_date).total_seconds() / 86400 / 30 for comp in comparables
    ) / len(comparables)

    confidence = 0.5
    confidence += min(0.3, len(comparables) * 0.05)
    confidence += avg_similarity * 0.2
    confidence -= min(0.2, max(0.0, avg_age_months) * 0.01)
    return value, max(0.0, min(1.0, confidence))


def default_insights() -> List[CmaMarketInsight]:
    return [
        CmaMarketInsight(
            insight_type="price_trend",
            insight_title="Estimated Market Trend",
            insight_description="Based on regional data, property values in similar areas have increased approximately 3-5% over the past year.",
            insight_data={"note": "Limited market data available for this area. Insights based on regional trends."},
            importance=3,
        ),
        CmaMarketInsight(
            insight_type="market_conditions",
            insight_title="Current Market Conditions",
            insight_description="This area appears to have limited recent sales data. For a more accurate analysis, consult with a local real estate professional.",
            importance=4,
        ),
    ]


def pricing_adjustments(comparables: List[CmaComparable]) -> List[CmaPricingAdjustment]:
    if not comparables:
        return []
    avg_price_per_sqft = sum(comp.price_per_sqft for comp in comparables) / len(comparables)
    return [
        CmaPricingAdjustment(
            adjustment_factor="bedroom",
            adjustment_value=BEDROOM_ADJUSTMENT,
            adjustment_description="Additional bedroom vs. comparable property",
        ),
        CmaPricingAdjustment(
            adjustment_factor="bathroom",
            adjustment_value=BATHROOM_ADJUSTMENT,
            adjustment_description="Additional bathroom vs. comparable property",
        ),
        CmaPricingAdjustment(
            adjustment_factor="sqft",
            adjustment_value=round(avg_price_per_sqft),
            adjustment_description="Price per additional square foot",
        ),
    ]


def _parse_date(value, default: datetime) -> datetime:
    if not value:
        return default
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return default
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


# ****************************************************
#  Reports
# ****************************************************

class CmaService:

    def __init__(self, db, idx: Optional[IdxBrokerClient] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.collection = db.collection(CMA_REPORTS)
        self.idx = idx or IdxBrokerClient()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def score(self, subject: CmaRequest, comparable: CmaComparable) -> CmaComparable:
        comparable.similarity = similarity_score(subject, comparable)
        comparable.adjusted_price = adjusted_price(subject, comparable)
        return comparable

    def sold_comparables(self, subject: CmaRequest) -> List[CmaComparable]:
        """Recent IDX sales in the same zip within ±1 bed/bath and ±20% sqft."""
        min_sqft, max_sqft = math.floor(subject.sqft * 0.8), math.ceil(subject.sqft * 1.2)
        min_beds, max_beds = max(1, subject.bedrooms - 1), subject.bedrooms + 1
        min_baths, max_baths = max(1, subject.bathrooms - 1), subject.bathrooms + 1
        now = self.clock()

        comparables = []
        for listing in self.idx.fetch_sold_pending("sold", limit=SOLD_LISTINGS_LIMIT).listings:
            sale_price = listing.sold_price or listing.price
            if listing.zip_code != subject.zip_code or not sale_price or not listing.sqft:
                continue
            if not (min_beds <= listing.bedrooms <= max_beds and min_baths <= listing.bathrooms <= max_baths):
                continue
            if not (min_sqft <= listing.sqft <= max_sqft):
                continue

            comparables.append(self.score(subject, CmaComparable(
                address=listing.address,
                city=listing.city,
                state=listing.state,
                zip_code=listing.zip_code,
                sale_price=sale_price,
                sale_date=_parse_date(listing.sold_date or listing.listed_date, now),
                bedrooms=listing.bedrooms,
                bathrooms=listing.bathrooms,
                sqft=listing.sqft,
                price_per_sqft=round(sale_price / listing.sqft, 2),
                image_url=listing.images[0] if listing.images else None,
            )))

        comparables.sort(key=lambda c: (-c.sale_date.timestamp(), abs(c.sqft - subject.sqft)))
        return comparables[:subject.max_comparables]

    def generated_comparables(self, subject: CmaRequest) -> List[CmaComparable]:
        """
        Synthetic comparables around the $250/sqft base price. The generator
        is seeded from the subject so the same request yields the same set.
        """
        rng = random.Random(
            f"{subject.zip_code}|{subject.property_type}|{subject.bedrooms}|{subject.bathrooms}|{subject.sqft}"
        )
        price = base_price(subject)
        now = self.clock()

        comparables = []
        for i in range(subject.max_comparables):
            sqft = max(500, subject.sqft + math.floor(rng.uniform(-0.2, 0.2) * subject.sqft))
            sale_price = round(price * (1 + rng.uniform(-0.15, 0.15)))
            comparables.append(self.score(subject, CmaComparable(
                address=f"{123 + i} Sample St",
                city="Sample City",
                state="CA",
                zip_code=subject.zip_code,
                sale_price=sale_price,
                sale_date=now - timedelta(days=rng.randint(0, 364)),
                bedrooms=max(1, subject.bedrooms + rng.randint(-1, 1)),
                bathrooms=max(1, subject.bathrooms + rng.randint(-1, 1)),
                sqft=sqft,
                price_per_sqft=round(sale_price / sqft, 2),
                year_built=2000 + rng.randint(0, 19),
                lot_size=5000 + rng.randint(0, 4999),
                distance_from_subject=round(rng.uniform(0, 2), 2),
            )))

        comparables.sort(key=lambda c: c.similarity, reverse=True)
        return comparables

    def find_comparables(self, subject: CmaRequest) -> List[CmaComparable]:
        comparables = self.sold_comparables(subject)
        if comparables:
            logger.info(f"CMA: {len(comparables)} IDX sold comparables in {subject.zip_code}")
            return comparables
        logger.info(f"CMA: no IDX sold comparables in {subject.zip_code}, generating")
        return self.generated_comparables(subject)

    def generate(self, request: CmaRequest) -> CmaReport:
        now = self.clock()
        doc_ref = self.collection.document()
        report = CmaReport(
            id=doc_ref.id,
            user_id=request.user_id,
            property_id=request.property_id,
            zip_code=request.zip_code,
            property_type=request.property_type,
            bedrooms=request.bedrooms,
            bathrooms=request.bathrooms,
            sqft=request.sqft,
            year_built=request.year_built,
            lot_size=request.lot_size,
            pricing_tier=request.pricing_tier,
            status=CmaStatus.PROCESSING,
            created_at=now,
            last_updated=now,
        )
        doc_ref.set(report.model_dump(by_alias=True, exclude={"id"}))

        try:
            comparables = self.find_comparables(request)
            estimated, confidence = estimate_value(request, comparables, now)
            report.comparables = comparables
            report.estimated_value = estimated
            report.confidence_score = round(confidence, 4)
            report.market_insights = default_insights()
            report.pricing_adjustments = pricing_adjustments(comparables)
            report.status = CmaStatus.GENERATED.value
            report.last_updated = self.clock()
            doc_ref.set(report.model_dump(by_alias=True, exclude={"id"}))
        except Exception as e:
            logger.error(f"CMA report {doc_ref.id} failed: {e}")
            doc_ref.update({"status": CmaStatus.ERROR.value, "lastUpdated": self.clock()})
            raise

        logger.info(f"CMA report {doc_ref.id}: value {estimated}, confidence {report.confidence_score}")
        return report

    def get_report(self, report_id: str) -> CmaReport:
        doc = self.collection.document(report_id).get()
        if not doc.exists:
            raise HTTPException(status_code=404, detail="CMA report not found")
        return CmaReport(id=doc.id, **doc.to_dict())

    def list_user_reports(self, user_id: str) -> List[CmaReport]:
        docs = self.collection.where(filter=FieldFilter("userId", "==", user_id)).stream()
        reports = [CmaReport(id=doc.id, **doc.to_dict()) for doc in docs]
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports
