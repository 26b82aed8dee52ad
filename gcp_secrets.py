import logging
import os
from typing import Optional

import google.auth
from google.auth.exceptions import DefaultCredentialsError
from google.api_core.exceptions import GoogleAPICallError
from google.cloud import secretmanager

logger = logging.getLogger(__name__)


def secret_path(project_id: str, name: str, version: str = "latest") -> str:
    return f"projects/{project_id}/secrets/{name}/versions/{version}"


def get_secret(name: str) -> Optional[str]:
    """
    Returns a setting such as RESET_MAIL_FUNCTION_URL.

    An environment variable of the same name wins. Otherwise the latest
    version is read from Secret Manager in the project of the default
    credentials (or GOOGLE_CLOUD_PROJECT). None when neither is available.
    """
    value = os.environ.get(name)
    if value:
        return value

    try:
        creds, project_id = google.auth.default()
    except DefaultCredentialsError as e:
        logger.warning("no Google credentials to read secret %s: %s", name, e)
        return None

    project_id = project_id or os.environ.get("GOOGLE_CLOUD_PROJECT")
    if not project_id:
        return None

    client = secretmanager.SecretManagerServiceClient(credentials=creds)
    try:
        resp = client.access_secret_version(request={"name": secret_path(project_id, name)})
    except GoogleAPICallError as e:
        logger.warning("secret %s not readable: %s", name, e)
        return None
    return resp.payload.data.decode("utf-8").strip()
