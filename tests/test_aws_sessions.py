from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import NoCredentialsError

from ecsimages.aws_sessions import AWSSessions, DEFAULT_REGION
from ecsimages.exceptions import ECSImagesError


class TestAWSSessions:
    @patch("ecsimages.aws_sessions.boto3.Session")
    def test_create_session_with_profile(self, mock_session_class):
        mock_session = MagicMock()
        mock_session.region_name = "us-east-1"
        mock_session_class.return_value = mock_session

        session = AWSSessions().create_session(profile_name="ops")

        assert session is mock_session
        mock_session_class.assert_called_once_with(profile_name="ops")
        mock_session.client.assert_called_once_with("sts", region_name="us-east-1")
        mock_session.client.return_value.get_caller_identity.assert_called_once()

    @patch("ecsimages.aws_sessions.boto3.Session")
    def test_create_session_with_static_credentials(self, mock_session_class):
        mock_session_class.return_value.region_name = None

        AWSSessions().create_session(
            region_name="eu-west-1",
            credentials={
                "aws_access_key": "AKIA",
                "aws_secret_key": "secret",
                "aws_sts_token": "token",
            },
        )

        mock_session_class.assert_called_once_with(
            aws_access_key_id="AKIA",
            aws_secret_access_key="secret",
            aws_session_token="token",
            region_name="eu-west-1",
        )
        mock_session_class.return_value.client.assert_called_once_with(
            "sts", region_name=DEFAULT_REGION
        )

    @patch("ecsimages.aws_sessions.boto3.Session")
    def test_create_session_invalid_credentials(self, mock_session_class):
        mock_session_class.return_value.client.return_value.get_caller_identity.side_effect = (
            NoCredentialsError()
        )
        with pytest.raises(
            ECSImagesError, match="Failed to create AWS session with profile 'ops'"
        ):
            AWSSessions().create_session(profile_name="ops")

    @patch("ecsimages.aws_sessions.AioSession")
    @patch("ecsimages.aws_sessions.boto3.Session")
    def test_ecs_client_uses_session_region(self, mock_session_class, mock_aio_session):
        mock_session_class.return_value.region_name = "us-west-2"

        sessions = AWSSessions(max_pool_connections=25)
        client_cm = sessions.ecs_client(profile_name="ops")

        mock_aio_session.assert_called_once_with(profile="ops")
        create_client = mock_aio_session.return_value.create_client
        assert client_cm is create_client.return_value
        args, kwargs = create_client.call_args
        assert args == ("ecs",)
        assert kwargs["region_name"] == "us-west-2"
        assert kwargs["config"].max_pool_connections == 25

    @patch("ecsimages.aws_sessions.AioSession")
    @patch("ecsimages.aws_sessions.boto3.Session")
    def test_ecs_client_defaults_region(self, mock_session_class, mock_aio_session):
        mock_session_class.return_value.region_name = None

        AWSSessions().ecs_client(
            credentials={"aws_access_key": "AKIA", "aws_secret_key": "secret"}
        )

        kwargs = mock_aio_session.return_value.create_client.call_args.kwargs
        assert kwargs["region_name"] == DEFAULT_REGION
        assert kwargs["aws_access_key_id"] == "AKIA"
        assert kwargs["aws_secret_access_key"] == "secret"
        assert kwargs["aws_session_token"] is None

    @patch("ecsimages.aws_sessions.AioSession")
    @patch("ecsimages.aws_sessions.boto3.Session")
    def test_ecs_client_reuses_created_session(self, mock_session_class, mock_aio_session):
        sessions = AWSSessions()
        sessions.create_session(profile_name="ops")
        sessions.ecs_client(profile_name="ops")
        assert mock_session_class.call_count == 1
