import os, json, base64, pathlib

from google.cloud import firestore
from google.oauth2 import service_account

from cropgen.core.config import Settings

# Created once in the app lifespan and handed to the repositories.


def create_client(settings: Settings) -> firestore.AsyncClient:
    """Create the async Firestore client, safely in any env."""
    # 1) Prefer base64 secret if present
    key_b64 = settings.FIREBASE_KEY_B64 or os.getenv("FIREBASE_KEY_B64")
    if key_b64:
        creds = service_account.Credentials.from_service_account_info(
            json.loads(base64.b64decode(key_b64))
        )
        project = settings.GOOGLE_CLOUD_PROJECT or creds.project_id
        return firestore.AsyncClient(project=project, credentials=creds)

    # 2) Otherwise use a file path from env or settings
    path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or settings.GOOGLE_APPLICATION_CREDENTIALS
    if path and pathlib.Path(path).exists():
        creds = service_account.Credentials.from_service_account_file(path)
        project = settings.GOOGLE_CLOUD_PROJECT or creds.project_id
        return firestore.AsyncClient(project=project, credentials=creds)

    # 3) Fall back to ADC (works locally after `gcloud auth application-default login`)
    return firestore.AsyncClient(project=settings.GOOGLE_CLOUD_PROJECT or None)
