import firebase_admin, os, json, logging
from functools import lru_cache
from firebase_admin import credentials, firestore
from app.config.settings import settings

logger = logging.getLogger(__name__)

# collection names
CONVERSATIONS = "chat_conversations"
PARTICIPANTS = "chat_participants"
MESSAGES = "chat_messages"
APPOINTMENTS = "appointments"
PROPERTIES = "properties"
SERVICE_PROVIDERS = "service_providers"
FINANCING_PROVIDERS = "financing_providers"
SERVICE_REQUESTS = "service_requests"
SERVICE_BUNDLES = "service_bundles"
CMA_REPORTS = "cma_reports"
CHATBOT_HISTORY = "chatbot_history"


def init_firebase():
    """Initialise the default Firebase app once."""
    if firebase_admin._apps:
        return

    firebase_json = os.getenv("FIREBASE_JSON")
    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None

    if firebase_json:
        # Hosted deployments ship the service account as an env var
        cred = credentials.Certificate(json.loads(firebase_json))
    elif settings.FIREBASE_KEY_PATH:
        cred = credentials.Certificate(settings.FIREBASE_KEY_PATH)
    else:
        # Application default credentials (gcloud / emulator)
        cred = credentials.ApplicationDefault()

    firebase_admin.initialize_app(cred, options)
    logger.info("Firebase app initialized")


@lru_cache
def get_db():
    init_firebase()
    return firestore.client()
