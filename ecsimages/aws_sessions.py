import logging

import boto3
from aiobotocore.session import AioSession
from botocore.config import Config
from botocore.exceptions import NoCredentialsError, PartialCredentialsError, ClientError

from .exceptions import ECSImagesError

DEFAULT_REGION = "eu-west-1"


class AWSSessions:
    def __init__(self, max_pool_connections=10):
        # This is put here due to https://github.com/boto/botocore/issues/1841 -
        # or maybe I should just not use the root logger.
        boto3.set_stream_logger(name="botocore.credentials", level=logging.ERROR)

        self.max_pool_connections = max_pool_connections
        self.session = None

    @staticmethod
    def _credential_kwargs(credentials):
        if not credentials:
            return {}
        return {
            "aws_access_key_id": credentials["aws_access_key"],
            "aws_secret_access_key": credentials["aws_secret_key"],
            "aws_session_token": credentials.get("aws_sts_token"),
        }

    def create_session(self, profile_name=None, region_name=None, credentials=None):
        """Create a boto3 session and check that its credentials are valid."""
        try:
            kwargs = self._credential_kwargs(credentials)
            if profile_name is not None:
                kwargs["profile_name"] = profile_name
            if region_name is not None:
                kwargs["region_name"] = region_name
            session = boto3.Session(**kwargs)
            sts = session.client("sts", region_name=session.region_name or DEFAULT_REGION)
            sts.get_caller_identity()
        except (
            NoCredentialsError,
            PartialCredentialsError,
            ClientError,
            Exception,
        ) as e:
            raise ECSImagesError(
                f"Failed to create AWS session with profile '{profile_name}': {e}"
            ) from e

        self.session = session
        return session

    def ecs_client(self, profile_name=None, region_name=None, credentials=None):
        """
        Return an async context manager yielding an aiobotocore ECS client.
        The boto3 session is created first so bad credentials fail early.
        """
        if self.session is None:
            self.create_session(
                profile_name=profile_name,
                region_name=region_name,
                credentials=credentials,
            )
        aio_session = AioSession(profile=profile_name)
        return aio_session.create_client(
            "ecs",
            region_name=self.session.region_name or DEFAULT_REGION,
            config=Config(max_pool_connections=self.max_pool_connections),
            **self._credential_kwargs(credentials),
        )
