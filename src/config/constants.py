from enum import Enum


class UserRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"


class ContentType(str, Enum):
    POST = "post"
    PAGE = "page"
    PRODUCT = "product"
    COURSE = "course"


class InteractionType(str, Enum):
    VIEW = "view"
    CLICK = "click"
    PURCHASE = "purchase"
    ENROLL = "enroll"
    RECOMMENDATION_CLICK = "recommendation_click"


class RecommendationAlgorithm(str, Enum):
    RELATED = "related"
    TRENDING = "trending"
    POPULAR = "popular"
    PERSONALIZED = "personalized"
    COLLABORATIVE = "collaborative"
    BOUGHT_TOGETHER = "bought_together"
    SIMILAR_USERS = "similar_users"


class ContentStatus(str, Enum):
    PUBLISHED = "PUBLISHED"
    ACTIVE = "ACTIVE"


class AnalyticsPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


ANALYTICS_PERIOD_DAYS = {
    AnalyticsPeriod.DAY: 1,
    AnalyticsPeriod.WEEK: 7,
    AnalyticsPeriod.MONTH: 30,
    AnalyticsPeriod.QUARTER: 90,
    AnalyticsPeriod.YEAR: 365,
}


# ============================================================================
# TRACKING CONSTANTS
# ============================================================================

# Exempt from the interaction retention sweep regardless of age
RETAINED_INTERACTION_TYPES = (InteractionType.PURCHASE, InteractionType.ENROLL)

# Interaction types that make up a user's "already seen" set per content type
SEEN_INTERACTION_TYPES = {
    ContentType.POST: (InteractionType.VIEW,),
    ContentType.PRODUCT: (InteractionType.VIEW, InteractionType.PURCHASE),
}
SEEN_LOOKBACK_LIMIT = 100


# ============================================================================
# RECOMMENDATION ENGINE CONSTANTS
# ============================================================================

# Rank-decay scoring: score = 1 - index * RANK_DECAY_STEP
RANK_DECAY_STEP = 0.1

# Extra candidates requested when results are filtered per user afterwards
USER_FILTER_HEADROOM = 10

DEFAULT_TRENDING_DAYS = 7
PERSONALIZED_HISTORY_LIMIT = 20

# Collaborative ("also viewed")
COLLABORATIVE_MAX_USERS = 100
COLLABORATIVE_SOURCE_TYPES = (InteractionType.VIEW, InteractionType.CLICK)
COLLABORATIVE_TARGET_TYPES = (
    InteractionType.VIEW,
    InteractionType.CLICK,
    InteractionType.PURCHASE,
)

# Frequently bought together
BOUGHT_TOGETHER_MAX_PURCHASES = 500
BOUGHT_TOGETHER_WINDOW_MINUTES = 30

# Similar users
SIMILAR_USERS_HISTORY_LIMIT = 50
SIMILAR_USERS_MAX_USERS = 20

EXCERPT_LENGTH = 150
