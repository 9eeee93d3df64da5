"""
AWS SQS job queue module for the video effects pipeline.
Thin wrappers over the SQS API; every function takes the client explicitly
so the worker owns its connections and configuration.
"""

import json
import logging
from typing import Dict, List, Optional

import boto3

logger = logging.getLogger(__name__)

MAX_WAIT_TIME_SECONDS = 20
MAX_BATCH_SIZE = 10


def get_sqs_client(region: str = 'us-east-1'):
    """Create an SQS client (credentials from the standard boto3 chain)."""
    return boto3.client('sqs', region_name=region)


def get_or_create_queue(
    sqs,
    queue_name: str,
    visibility_timeout: int = 900,
    dead_letter_arn: Optional[str] = None,
    max_receive_count: int = 5,
) -> str:
    """
    Get queue URL, creating the queue if it doesn't exist.

    Args:
        sqs: boto3 SQS client
        queue_name: Name of the SQS queue
        visibility_timeout: Default visibility timeout for a new queue
        dead_letter_arn: ARN of a dead-letter queue for the redrive policy
        max_receive_count: Receives before a message moves to the dead-letter queue

    Returns:
        Queue URL
    """
    try:
        response = sqs.get_queue_url(QueueName=queue_name)
        logger.info("Found existing queue: %s", queue_name)
        return response['QueueUrl']
    except sqs.exceptions.QueueDoesNotExist:
        pass

    attributes = {
        'VisibilityTimeout': str(visibility_timeout),
        'MessageRetentionPeriod': '1209600',  # 14 days
        'ReceiveMessageWaitTimeSeconds': str(MAX_WAIT_TIME_SECONDS),
    }
    if dead_letter_arn:
        attributes['RedrivePolicy'] = json.dumps({
            'deadLetterTargetArn': dead_letter_arn,
            'maxReceiveCount': str(max_receive_count),
        })

    logger.info("Creating queue: %s", queue_name)
    response = sqs.create_queue(QueueName=queue_name, Attributes=attributes)
    return response['QueueUrl']


def get_queue_arn(sqs, queue_url: str) -> str:
    response = sqs.get_queue_attributes(QueueUrl=queue_url, AttributeNames=['QueueArn'])
    return response['Attributes']['QueueArn']


def receive_messages(
    sqs,
    queue_url: str,
    max_messages: int = 1,
    wait_time_seconds: int = 20,
    visibility_timeout: int = 900
) -> List[Dict]:
    """
    Receive messages from SQS queue with long polling.

    Args:
        sqs: boto3 SQS client
        queue_url: SQS queue URL
        max_messages: Maximum number of messages to receive (1-10)
        wait_time_seconds: Long polling wait time (0-20 seconds)
        visibility_timeout: Time before message becomes visible again (seconds)

    Returns:
        List of message dictionaries with 'Body', 'ReceiptHandle', etc.
    """
    response = sqs.receive_message(
        QueueUrl=queue_url,
        MaxNumberOfMessages=max(1, min(max_messages, MAX_BATCH_SIZE)),
        WaitTimeSeconds=max(0, min(wait_time_seconds, MAX_WAIT_TIME_SECONDS)),
        VisibilityTimeout=visibility_timeout,
        AttributeNames=['All'],
        MessageAttributeNames=['All']
    )

    return response.get('Messages', [])


def delete_message(sqs, queue_url: str, receipt_handle: str):
    """Delete a processed message from queue."""
    sqs.delete_message(
        QueueUrl=queue_url,
        ReceiptHandle=receipt_handle
    )


def change_message_visibility(
    sqs,
    queue_url: str,
    receipt_handle: str,
    visibility_timeout: int
):
    """
    Change visibility timeout of a message (extend processing time).
    SQS caps the value at 12 hours.
    """
    sqs.change_message_visibility(
        QueueUrl=queue_url,
        ReceiptHandle=receipt_handle,
        VisibilityTimeout=min(visibility_timeout, 43200)
    )


def enqueue_effect(
    sqs,
    queue_url: str,
    bucket: str,
    input_key: str,
    output_key: str,
    effect_type: Optional[str] = None
) -> Optional[str]:
    """
    Add an effect job to the queue.

    Args:
        sqs: boto3 SQS client
        queue_url: SQS queue URL
        bucket: Bucket holding the input and receiving the output
        input_key: Source video key (deleted after success)
        output_key: Destination key for the processed video
        effect_type: Preset name; the worker default applies when omitted

    Returns:
        SQS message id
    """
    message = {
        'bucket': bucket,
        'input_key': input_key,
        'output_key': output_key,
    }
    if effect_type:
        message['effect_type'] = effect_type

    params = {'QueueUrl': queue_url, 'MessageBody': json.dumps(message)}
    if _is_fifo_queue(queue_url):
        params['MessageGroupId'] = input_key
        params['MessageDeduplicationId'] = f"{bucket}/{input_key}"

    response = sqs.send_message(**params)
    logger.info("Enqueued effect job: s3://%s/%s -> %s (%s)",
                bucket, input_key, output_key, effect_type or 'default')
    return response.get('MessageId')


def send_batch(sqs, queue_url: str, messages: List[Dict]) -> Dict:
    """
    Send multiple job bodies in one batch (up to 10).

    Args:
        sqs: boto3 SQS client
        queue_url: SQS queue URL
        messages: Job dictionaries, serialized as JSON bodies

    Returns:
        Dict with successful and failed entry ids
    """
    entries = []
    for i, msg in enumerate(messages[:MAX_BATCH_SIZE]):
        entry = {
            'Id': str(i),
            'MessageBody': json.dumps(msg)
        }
        if _is_fifo_queue(queue_url):
            entry['MessageGroupId'] = msg.get('input_key', 'default')
            entry['MessageDeduplicationId'] = f"{msg.get('bucket')}/{msg.get('input_key')}"
        entries.append(entry)

    response = sqs.send_message_batch(
        QueueUrl=queue_url,
        Entries=entries
    )

    for failure in response.get('Failed', []):
        logger.warning("Batch entry %s failed: %s", failure.get('Id'), failure.get('Message'))

    return {
        'successful': [s['Id'] for s in response.get('Successful', [])],
        'failed': [f['Id'] for f in response.get('Failed', [])]
    }


def get_queue_stats(sqs, queue_url: str) -> Dict:
    """Get queue statistics (message counts)."""
    response = sqs.get_queue_attributes(
        QueueUrl=queue_url,
        AttributeNames=[
            'ApproximateNumberOfMessages',
            'ApproximateNumberOfMessagesNotVisible',
            'ApproximateNumberOfMessagesDelayed'
        ]
    )

    attrs = response.get('Attributes', {})
    return {
        'pending': int(attrs.get('ApproximateNumberOfMessages', 0)),
        'in_flight': int(attrs.get('ApproximateNumberOfMessagesNotVisible', 0)),
        'delayed': int(attrs.get('ApproximateNumberOfMessagesDelayed', 0))
    }


def _is_fifo_queue(queue_url: str) -> bool:
    """Check if queue is a FIFO queue based on URL."""
    return bool(queue_url) and queue_url.endswith('.fifo')
