#!/usr/bin/env python3
"""
S3 Client factory for Logga
Builds the boto3 S3 client used by the upload dispatcher

Credentials come from AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY. The
region from AWS_DEFAULT_REGION wins over the configured one. A custom
endpoint makes the client talk to any S3-compatible backend.
"""

import os
import logging
from typing import Tuple

import boto3.session

logger = logging.getLogger(__name__)

ENV_ACCESS_KEY_ID = 'AWS_ACCESS_KEY_ID'
ENV_SECRET_ACCESS_KEY = 'AWS_SECRET_ACCESS_KEY'
ENV_DEFAULT_REGION = 'AWS_DEFAULT_REGION'


class CredentialsError(Exception):
    """Raised when a required credential environment variable is not set."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"{key} environment variable not present")


def env_var(key: str) -> str:
    """
    Read a credential from the environment.

    Raises:
        CredentialsError: If the variable is unset or empty
    """
    value = os.environ.get(key)
    if not value:
        raise CredentialsError(key)
    return value


def get_aws_credentials() -> Tuple[str, str]:
    """Return (access_key_id, secret_access_key) from the environment."""
    return env_var(ENV_ACCESS_KEY_ID), env_var(ENV_SECRET_ACCESS_KEY)


def create_s3_client(region: str, endpoint: str = None, profile_name: str = None):
    """
    Create an S3 client.

    Args:
        region: Configured region (overridden by AWS_DEFAULT_REGION)
        endpoint: Optional S3-compatible endpoint URL
        profile_name: Optional boto3 profile

    Returns:
        boto3 S3 client

    Raises:
        CredentialsError: If credentials are missing from the environment
    """
    region = os.environ.get(ENV_DEFAULT_REGION) or region
    access_key_id, secret_access_key = get_aws_credentials()

    if profile_name:
        session = boto3.session.Session(profile_name=profile_name)
        logger.info(f"Using AWS profile: {profile_name}")
    else:
        session = boto3.session.Session()

    client_kwargs = {
        'region_name': region,
        'aws_access_key_id': access_key_id,
        'aws_secret_access_key': secret_access_key,
    }
    if endpoint:
        logger.info(f"Using custom endpoint: {endpoint}")
        client_kwargs['endpoint_url'] = endpoint

    client = session.client('s3', **client_kwargs)
    logger.info(f"S3 client ready (region: {region})")
    return client
