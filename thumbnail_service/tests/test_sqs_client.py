"""Tests for SQSClient class."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from thumbnail_service.errors import QueueUnavailableError
from thumbnail_service.sqs_client import SQSClient


class TestSQSClient:
    """Tests for SQSClient class."""

    @pytest.fixture
    def client_with_mock(self, service_config):
        """Fixture providing SQSClient with mocked boto3."""
        service_config.dead_letter_queue_url = 'https://sqs.us-west-2.amazonaws.com/123456789012/thumbnail-dlq'
        mock_boto = MagicMock()
        with patch('thumbnail_service.sqs_client.boto3.client', return_value=mock_boto):
            client = SQSClient(service_config)
        client._test_mock = mock_boto
        return client

    def test_receive(self, client_with_mock):
        """Test receiving asks for the receive count attribute."""
        client_with_mock._test_mock.receive_message.return_value = {
            'Messages': [{'MessageId': 'm1', 'ReceiptHandle': 'h1', 'Body': '{}'}]
        }

        messages = client_with_mock.receive(max_messages=5, wait_seconds=10)

        assert len(messages) == 1
        kwargs = client_with_mock._test_mock.receive_message.call_args.kwargs
        assert kwargs['MaxNumberOfMessages'] == 5
        assert kwargs['WaitTimeSeconds'] == 10
        assert kwargs['AttributeNames'] == ['ApproximateReceiveCount']
        assert kwargs['VisibilityTimeout'] == 300

    def test_receive_wait_stays_inside_read_timeout(self, client_with_mock):
        """Test the long poll is shorter than the socket read timeout."""
        client_with_mock._test_mock.receive_message.return_value = {}

        assert client_with_mock.receive(wait_seconds=20) == []
        kwargs = client_with_mock._test_mock.receive_message.call_args.kwargs
        assert kwargs['WaitTimeSeconds'] == 19

    def test_acknowledge(self, client_with_mock):
        """Test acknowledging deletes the message."""
        client_with_mock.acknowledge('h1')

        client_with_mock._test_mock.delete_message.assert_called_once_with(
            QueueUrl=client_with_mock.config.queue_url,
            ReceiptHandle='h1',
        )

    def test_release(self, client_with_mock):
        """Test releasing makes the message visible immediately."""
        client_with_mock.release('h1')

        kwargs = client_with_mock._test_mock.change_message_visibility.call_args.kwargs
        assert kwargs['ReceiptHandle'] == 'h1'
        assert kwargs['VisibilityTimeout'] == 0

    def test_dead_letter(self, client_with_mock):
        """Test dead-lettering sends the body and reason to the DLQ."""
        client_with_mock.dead_letter('{"Records": []}', 'cannot decode', 2)

        kwargs = client_with_mock._test_mock.send_message.call_args.kwargs
        assert kwargs['QueueUrl'].endswith('thumbnail-dlq')
        assert kwargs['MessageBody'] == '{"Records": []}'
        assert kwargs['MessageAttributes']['FailureReason']['StringValue'] == 'cannot decode'
        assert kwargs['MessageAttributes']['ReceiveCount']['StringValue'] == '2'

    def test_send(self, client_with_mock):
        """Test sending returns the message id."""
        client_with_mock._test_mock.send_message.return_value = {'MessageId': 'new-id'}

        assert client_with_mock.send('{}') == 'new-id'

    def test_has_dead_letter_queue(self, client_with_mock):
        """Test the DLQ flag follows configuration."""
        assert client_with_mock.has_dead_letter_queue is True

        client_with_mock.config.dead_letter_queue_url = None
        assert client_with_mock.has_dead_letter_queue is False

    def test_queue_unavailable(self, client_with_mock):
        """Test persistent 5xx responses raise QueueUnavailableError."""
        client_with_mock._test_mock.delete_message.side_effect = ClientError(
            {'Error': {'Code': 'InternalError'}, 'ResponseMetadata': {'HTTPStatusCode': 500}},
            'DeleteMessage'
        )

        with pytest.raises(QueueUnavailableError):
            client_with_mock.acknowledge('h1')
        assert client_with_mock._test_mock.delete_message.call_count == 3
