"""Constants and configuration for the split-ticket fare finder."""

# ── Journey planning API (DB HAFAS REST wrapper) ───────────────────────
DB_REST_URL = "https://v6.db.transport.rest"
JOURNEYS_PATH = "/journeys"
REQUEST_TIMEOUT_S = 15  # per request; a hung fetch must not stall a candidate
JOURNEY_SEARCH_RESULTS = 5  # journeys listed for a user search
PRICE_LOOKUP_RESULTS = 1    # only the first journey is priced

# ── Split search ──────────────────────────────────────────────────────
MAX_CONCURRENT_LEG_FETCHES = 2  # the two legs of one candidate

# ── Deutschland-Ticket eligibility ────────────────────────────────────
# Remark code HAFAS attaches to legs covered by the Deutschland-Ticket
DEUTSCHLANDTICKET_REMARK_CODE = "9G"
# Product heuristic used when the remark is missing
ELIGIBLE_PRODUCTS = frozenset({"regional", "suburban"})
ELIGIBLE_PRODUCT_NAMES = frozenset({"Bus"})

# ── Fares ─────────────────────────────────────────────────────────────
DEFAULT_CURRENCY = "EUR"
# Loyalty-card codes accepted by the planning API
LOYALTY_CARDS: dict[str, str] = {
    "bahncard-2nd-25": "BahnCard 25, 2nd class",
    "bahncard-1st-25": "BahnCard 25, 1st class",
    "bahncard-2nd-50": "BahnCard 50, 2nd class",
    "bahncard-1st-50": "BahnCard 50, 1st class",
    "bahncard-2nd-100": "BahnCard 100, 2nd class",
    "bahncard-1st-100": "BahnCard 100, 1st class",
}

# ── User-visible search errors ────────────────────────────────────────
ERR_NO_PRICE = "Journey has no price information"
ERR_NO_DEPARTURE = "Journey has no departure time"
ERR_NO_STOPOVERS = "No stopovers found in this journey"
ERR_CANCELLED = "Split search cancelled"
