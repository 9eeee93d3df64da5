"""
Queue module for effect jobs on AWS SQS.
"""

from .sqs_queue import (
    get_sqs_client,
    get_or_create_queue,
    get_queue_arn,
    enqueue_effect,
    send_batch,
    receive_messages,
    delete_message,
    change_message_visibility,
    get_queue_stats,
)

__all__ = [
    'get_sqs_client',
    'get_or_create_queue',
    'get_queue_arn',
    'enqueue_effect',
    'send_batch',
    'receive_messages',
    'delete_message',
    'change_message_visibility',
    'get_queue_stats',
]
