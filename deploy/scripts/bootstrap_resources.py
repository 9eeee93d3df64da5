#!/usr/bin/env python3
"""
Create the storage bucket, the effects queue and its dead-letter queue.
Safe to re-run: existing resources are left as they are.

Usage: python bootstrap_resources.py --bucket my-effects-bucket
"""

import os
import sys
import argparse

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from dotenv import load_dotenv

# Load environment
load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))

from job_queue.sqs_queue import get_sqs_client, get_or_create_queue, get_queue_arn
from util.s3_utils import get_s3_client, ensure_bucket_exists


def main():
    parser = argparse.ArgumentParser(description='Create bucket and queues for the effects worker')
    parser.add_argument('--bucket', type=str, default=None, help='S3 bucket (default: EFFECTS_BUCKET)')
    parser.add_argument('--queue-name', type=str, default=None, help='SQS queue name')
    parser.add_argument('--visibility-timeout', type=int, default=2100,
                        help='Queue visibility timeout in seconds')
    parser.add_argument('--max-receive-count', type=int, default=5,
                        help='Receives before a job moves to the dead-letter queue')
    args = parser.parse_args()

    bucket = args.bucket or os.environ.get('EFFECTS_BUCKET')
    if not bucket:
        parser.error('--bucket or EFFECTS_BUCKET is required')
    queue_name = args.queue_name or os.environ.get('EFFECTS_QUEUE_NAME', 'video-effects-jobs')
    region = os.environ.get('AWS_REGION', 'us-east-1')

    s3_client = get_s3_client(region, os.environ.get('S3_ENDPOINT_URL') or None)
    sqs_client = get_sqs_client(region)

    print(f"\nBucket: {bucket}")
    created = ensure_bucket_exists(s3_client, bucket, region)
    print(f"  {'created' if created else 'already exists'}")

    dlq_url = get_or_create_queue(sqs_client, f"{queue_name}-dlq")
    dlq_arn = get_queue_arn(sqs_client, dlq_url)
    print(f"\nDead-letter queue: {dlq_url}")

    queue_url = get_or_create_queue(
        sqs_client,
        queue_name,
        visibility_timeout=args.visibility_timeout,
        dead_letter_arn=dlq_arn,
        max_receive_count=args.max_receive_count,
    )
    print(f"Queue: {queue_url}")

    print("\nWorker environment:")
    print(f"  EFFECTS_QUEUE_URL={queue_url}")
    print(f"  EFFECTS_BUCKET={bucket}")
    print(f"  AWS_REGION={region}")


if __name__ == '__main__':
    main()
