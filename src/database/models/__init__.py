# Import all models to ensure they are registered with SQLAlchemy

from .course import Course
from .page import Page
from .post import Post
from .product import Product
from .recommendation_cache import RecommendationCacheEntry
from .recommendation_click import RecommendationClick
from .user_interaction import UserInteraction

__all__ = [
    "Course",
    "Page",
    "Post",
    "Product",
    "RecommendationCacheEntry",
    "RecommendationClick",
    "UserInteraction",
]
