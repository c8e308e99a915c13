# hookrelay/utils/ssm.py
import functools
import os
from typing import Optional

import boto3

# Default region fallback (so code doesn't raise NoRegionError)
_REGION = os.getenv("AWS_DEFAULT_REGION", os.getenv("AWS_REGION", "us-east-1"))


@functools.lru_cache(maxsize=1)
def _ssm_client():
    return boto3.client("ssm", region_name=_REGION)


def parameter_path(prefix: str, name: str) -> str:
    """``/keyhook/prod`` + ``SERVICE_SECRET`` -> ``/keyhook/prod/SERVICE_SECRET``."""
    return f"/{prefix.strip('/')}/{name}" if prefix.strip("/") else f"/{name}"


def get_relay_param(prefix: str, name: str, decrypt: bool = False) -> Optional[str]:
    """
    Fetch one relay setting from SSM Parameter Store.

    Returns None when the parameter doesn't exist; other AWS errors propagate.
    """
    client = _ssm_client()
    try:
        resp = client.get_parameter(Name=parameter_path(prefix, name), WithDecryption=decrypt)
    except client.exceptions.ParameterNotFound:
        return None
    return resp["Parameter"]["Value"]
