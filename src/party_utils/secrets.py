import json
import os

import boto3

from party_utils.config import DEFAULT_REGION
from party_utils.logger import get_logger

logger = get_logger("secrets")


def _get_secret_name_and_region() -> tuple[str, str]:
    """
    Resolve the Solapi secret name and AWS region from environment variables.

    SOLAPI_SECRET_NAME is required. AWS_REGION is optional and defaults to
    the Seoul region the service runs in.
    """
    secret_name = os.getenv("SOLAPI_SECRET_NAME")
    region_name = os.getenv("AWS_REGION", DEFAULT_REGION)

    if not secret_name:
        msg = "Missing required environment variables: SOLAPI_SECRET_NAME"
        logger.error(msg)
        raise RuntimeError(msg)

    return secret_name, region_name


def get_solapi_secrets() -> dict:
    """
    Fetch Solapi credentials from AWS Secrets Manager.

    Expects the secret value to be a JSON object, e.g.:

        {
          "api_key": "NCS...",
          "api_secret": "...",
          "sender": "01012345678"
        }
    """
    secret_name, region_name = _get_secret_name_and_region()

    logger.info(
        "secrets.fetch",
        extra={"secret_name": secret_name, "region": region_name},
    )

    client = boto3.client("secretsmanager", region_name=region_name)

    resp = client.get_secret_value(SecretId=secret_name)
    secret_str = resp.get("SecretString")

    if not secret_str:
        msg = f"Secret '{secret_name}' has no SecretString payload"
        logger.error(msg)
        raise RuntimeError(msg)

    try:
        data = json.loads(secret_str)
    except json.JSONDecodeError as e:
        logger.error(
            "secrets.invalid_json",
            extra={"secret_name": secret_name, "error": str(e)},
        )
        raise

    if not isinstance(data, dict):
        msg = f"Secret '{secret_name}' must be a JSON object"
        logger.error(msg)
        raise RuntimeError(msg)

    return data
