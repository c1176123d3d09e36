"""Tests for the SQS client adapter."""
import pytest
from unittest.mock import Mock, patch
from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

from sqs_input.queue.models import ErrorKind, FetchStatus, RawMessage
from sqs_input.queue.sqs_client import SQSClient, classify_error
from sqs_input.utils.exceptions import ConfigurationError

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/logs"


def client_error(code: str, operation: str = "ReceiveMessage") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} happened"}}, operation)


def sqs_message(i: int) -> dict:
    return {
        "MessageId": f"msg-{i}",
        "ReceiptHandle": f"rh-{i}",
        "MD5OfBody": f"md5-{i}",
        "Body": f'{{"n": {i}}}',
        "Attributes": {"SentTimestamp": "1609459200000"},
    }


class TestClassifyError:
    """Test transient / fatal classification of boto3 errors."""

    @pytest.mark.parametrize("code", [
        "InternalError",
        "ServiceUnavailable",
        "ThrottlingException",
        "RequestThrottled",
        "AWS.SimpleQueueService.NonExistentQueue",
    ])
    def test_service_errors_are_transient(self, code):
        error = classify_error(client_error(code))

        assert error.kind is ErrorKind.TRANSIENT
        assert error.code == code
        assert error.error_class == "ClientError"

    @pytest.mark.parametrize("code", [
        "InvalidClientTokenId",
        "AccessDenied",
        "SignatureDoesNotMatch",
        "UnrecognizedClientException",
    ])
    def test_auth_errors_are_fatal(self, code):
        error = classify_error(client_error(code))

        assert error.kind is ErrorKind.FATAL
        assert not error.is_transient

    def test_network_errors_are_transient(self):
        error = classify_error(EndpointConnectionError(endpoint_url="https://sqs.local"))

        assert error.kind is ErrorKind.TRANSIENT
        assert error.error_class == "EndpointConnectionError"
        assert error.code is None

    def test_network_error_cause_is_recorded(self):
        original = ConnectionResetError("reset by peer")
        exc = ReadTimeoutError(endpoint_url="https://sqs.local", error=original)

        error = classify_error(exc)

        assert error.kind is ErrorKind.TRANSIENT
        assert "reset by peer" in error.cause

    def test_missing_credentials_are_fatal(self):
        assert classify_error(NoCredentialsError()).kind is ErrorKind.FATAL

    def test_non_botocore_errors_are_rejected(self):
        with pytest.raises(TypeError):
            classify_error(ValueError("bug"))


class TestSQSClient:
    """Test resolving, fetching and acknowledging."""

    @pytest.fixture
    def mock_sqs(self):
        """Create a mock boto3 SQS client."""
        sqs = Mock()
        sqs.get_queue_url.return_value = {"QueueUrl": QUEUE_URL}
        sqs.receive_message.return_value = {"Messages": [sqs_message(1), sqs_message(2)]}
        sqs.delete_message_batch.return_value = {"Successful": [], "Failed": []}
        return sqs

    @pytest.fixture
    def client(self, mock_sqs):
        return SQSClient(queue="logs", sqs=mock_sqs)

    def test_builds_boto3_client_when_none_given(self):
        with patch('sqs_input.queue.sqs_client.boto3.client') as mock_boto:
            SQSClient(queue="logs", region="eu-west-1", endpoint_url="http://localhost:4566")

        args, kwargs = mock_boto.call_args
        assert args == ('sqs',)
        assert kwargs['region_name'] == "eu-west-1"
        assert kwargs['endpoint_url'] == "http://localhost:4566"
        assert kwargs['config'].read_timeout == 30

    def test_resolve_queue_url(self, client, mock_sqs):
        assert client.resolve_queue_url() == QUEUE_URL
        mock_sqs.get_queue_url.assert_called_once_with(QueueName="logs")

    def test_resolve_queue_url_with_owner_account(self, mock_sqs):
        client = SQSClient(queue="logs", queue_owner_aws_account_id="123456789012", sqs=mock_sqs)

        client.resolve_queue_url()

        mock_sqs.get_queue_url.assert_called_once_with(
            QueueName="logs", QueueOwnerAWSAccountId="123456789012"
        )

    @pytest.mark.parametrize("exc", [
        client_error("AWS.SimpleQueueService.NonExistentQueue", "GetQueueUrl"),
        EndpointConnectionError(endpoint_url="https://sqs.local"),
    ])
    def test_resolve_failure_is_configuration_error(self, client, mock_sqs, exc):
        mock_sqs.get_queue_url.side_effect = exc

        with pytest.raises(ConfigurationError, match="Verify the SQS queue name"):
            client.resolve_queue_url()

    def test_fetch_returns_batch(self, client, mock_sqs):
        client.resolve_queue_url()

        result = client.fetch(max_messages=10, attribute_names=["SentTimestamp"], wait_time_seconds=20)

        assert result.status is FetchStatus.OK
        assert [m.message_id for m in result.batch] == ["msg-1", "msg-2"]
        assert result.batch.messages[0].attributes["SentTimestamp"] == "1609459200000"
        mock_sqs.receive_message.assert_called_once_with(
            QueueUrl=QUEUE_URL,
            MaxNumberOfMessages=10,
            AttributeNames=["SentTimestamp"],
            WaitTimeSeconds=20
        )

    def test_fetch_resolves_queue_lazily(self, client, mock_sqs):
        client.fetch()

        mock_sqs.get_queue_url.assert_called_once()

    def test_fetch_tracks_stats(self, client, mock_sqs):
        client.fetch()
        mock_sqs.receive_message.return_value = {}
        result = client.fetch()

        stats = result.batch.stats
        assert len(result.batch) == 0
        assert stats.request_count == 2
        assert stats.received_message_count == 2
        assert stats.last_message_received_at is not None

    def test_fetch_empty_queue(self, client, mock_sqs):
        mock_sqs.receive_message.return_value = {}

        result = client.fetch()

        assert result.status is FetchStatus.OK
        assert result.batch.stats.last_message_received_at is None

    def test_fetch_transient_error_is_returned(self, client, mock_sqs):
        mock_sqs.receive_message.side_effect = client_error("ServiceUnavailable")

        result = client.fetch()

        assert result.status is FetchStatus.TRANSIENT
        assert result.error.code == "ServiceUnavailable"
        assert result.batch is None
        assert client.stats.request_count == 1

    def test_fetch_fatal_error_is_returned(self, client, mock_sqs):
        mock_sqs.receive_message.side_effect = client_error("InvalidClientTokenId")

        result = client.fetch()

        assert result.status is FetchStatus.FATAL

    @pytest.mark.parametrize("kwargs", [
        {"max_messages": 0},
        {"max_messages": 11},
        {"wait_time_seconds": 21},
        {"wait_time_seconds": -1},
    ])
    def test_fetch_rejects_invalid_options(self, client, kwargs):
        with pytest.raises(ValueError):
            client.fetch(**kwargs)

    def test_acknowledge_deletes_in_batches(self, client, mock_sqs):
        client.resolve_queue_url()
        messages = [RawMessage.from_sqs(sqs_message(i)) for i in range(12)]
        mock_sqs.delete_message_batch.side_effect = [
            {"Successful": [{"Id": str(i)} for i in range(10)]},
            {"Successful": [{"Id": "0"}, {"Id": "1"}]},
        ]

        deleted = client.acknowledge(messages)

        assert deleted == [f"msg-{i}" for i in range(12)]
        assert mock_sqs.delete_message_batch.call_count == 2
        first = mock_sqs.delete_message_batch.call_args_list[0][1]
        assert first["QueueUrl"] == QUEUE_URL
        assert first["Entries"][0] == {"Id": "0", "ReceiptHandle": "rh-0"}
        assert len(first["Entries"]) == 10

    def test_acknowledge_reports_partial_failure(self, client, mock_sqs):
        messages = [RawMessage.from_sqs(sqs_message(i)) for i in range(2)]
        mock_sqs.delete_message_batch.return_value = {
            "Successful": [{"Id": "1"}],
            "Failed": [{"Id": "0", "Code": "ReceiptHandleIsInvalid", "Message": "bad", "SenderFault": True}],
        }

        assert client.acknowledge(messages) == ["msg-1"]

    def test_acknowledge_swallows_backend_errors(self, client, mock_sqs):
        mock_sqs.delete_message_batch.side_effect = client_error("InternalError", "DeleteMessageBatch")

        assert client.acknowledge([RawMessage.from_sqs(sqs_message(1))]) == []

    def test_acknowledge_nothing(self, client, mock_sqs):
        assert client.acknowledge([]) == []
        mock_sqs.delete_message_batch.assert_not_called()
