import os

import firebase_admin
from firebase_admin import auth, credentials

from src.config.settings import settings
from src.shared.utils import get_logger

logger = get_logger(__name__)

__all__ = ["auth", "initialize_firebase"]


def initialize_firebase():
    """
    Initialize the Firebase app used to verify caller ID tokens.

    Without credentials the app stays uninitialized and every bearer token is
    rejected, which leaves the public endpoints usable anonymously.
    """
    if firebase_admin._apps:
        return

    service_account_path = settings.GOOGLE_APPLICATION_CREDENTIALS
    if not service_account_path or not os.path.exists(service_account_path):
        logger.warning("Firebase credentials not found; caller identity is disabled")
        return

    try:
        cred = credentials.Certificate(service_account_path)
        firebase_admin.initialize_app(cred)
        logger.info("Firebase initialized")
    except (ValueError, IOError) as e:
        logger.error(f"Failed to initialize Firebase: {e}")


if not settings.TESTING:
    initialize_firebase()
