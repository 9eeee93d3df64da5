#!/usr/bin/env python3
"""
Monitor video effects pipeline progress.
Shows SQS queue depth (main and dead-letter) and bucket input/output counts.
Usage: python monitor_progress.py --interval 30
"""

import os
import sys
import time
import argparse
from datetime import datetime, timezone

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from dotenv import load_dotenv

# Load environment
load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))

from job_queue.sqs_queue import get_sqs_client, get_queue_stats
from util.s3_utils import get_s3_client, bucket_stats


def queue_stats_by_name(sqs_client, queue_name):
    """Get SQS queue statistics, or an error entry."""
    try:
        queue_url = sqs_client.get_queue_url(QueueName=queue_name)['QueueUrl']
        return get_queue_stats(sqs_client, queue_url)
    except Exception as e:
        return {'error': str(e)}


def safe_bucket_stats(s3_client, bucket, prefix):
    try:
        return bucket_stats(s3_client, bucket, prefix)
    except Exception as e:
        return {'error': str(e)}


def format_duration(seconds):
    """Format seconds as HH:MM:SS."""
    hours, remainder = divmod(int(seconds), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def print_queue(title, stats):
    print(f"\n{title}")
    if 'error' in stats:
        print(f"   Error: {stats['error']}")
    else:
        print(f"   Pending:   {stats['pending']:,}")
        print(f"   In-flight: {stats['in_flight']:,}")
        print(f"   Delayed:   {stats['delayed']:,}")


def print_bucket(title, stats):
    print(f"\n{title}")
    if 'error' in stats:
        print(f"   Error: {stats['error']}")
    else:
        print(f"   Objects: {stats['objects']:,} ({stats['size_gb']:.2f} GB)")


def main():
    parser = argparse.ArgumentParser(description='Monitor video effects pipeline')
    parser.add_argument('--interval', type=int, default=30, help='Refresh interval in seconds')
    parser.add_argument('--queue-name', type=str, default=None, help='SQS queue name')
    parser.add_argument('--bucket', type=str, default=None, help='S3 bucket')
    parser.add_argument('--input-prefix', type=str, default='incoming/', help='Input key prefix')
    parser.add_argument('--output-prefix', type=str, default='processed/', help='Output key prefix')
    parser.add_argument('--once', action='store_true', help='Run once and exit')
    args = parser.parse_args()

    queue_name = args.queue_name or os.environ.get('EFFECTS_QUEUE_NAME', 'video-effects-jobs')
    dlq_name = f"{queue_name}-dlq"
    bucket = args.bucket or os.environ.get('EFFECTS_BUCKET')
    if not bucket:
        parser.error('--bucket or EFFECTS_BUCKET is required')

    region = os.environ.get('AWS_REGION', 'us-east-1')
    sqs_client = get_sqs_client(region)
    s3_client = get_s3_client(region, os.environ.get('S3_ENDPOINT_URL') or None)

    start_time = time.time()

    while True:
        try:
            now = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')

            queue_stats = queue_stats_by_name(sqs_client, queue_name)
            dlq_stats = queue_stats_by_name(sqs_client, dlq_name)
            input_stats = safe_bucket_stats(s3_client, bucket, args.input_prefix)
            output_stats = safe_bucket_stats(s3_client, bucket, args.output_prefix)

            if not args.once:
                print("\033[2J\033[H", end="")  # Clear screen
            print("=" * 70)
            print(f"VIDEO EFFECTS MONITOR - {now}")
            print(f"Elapsed: {format_duration(time.time() - start_time)}")
            print("=" * 70)

            print_queue(f"SQS QUEUE ({queue_name})", queue_stats)
            print_queue(f"DEAD-LETTER QUEUE ({dlq_name})", dlq_stats)
            print_bucket(f"INPUTS (s3://{bucket}/{args.input_prefix})", input_stats)
            print_bucket(f"OUTPUTS (s3://{bucket}/{args.output_prefix})", output_stats)

            if queue_stats.get('pending', 1) == 0 and queue_stats.get('in_flight', 1) == 0:
                print("\nQueue drained.")

            print("\n" + "=" * 70)

            if args.once:
                break

            time.sleep(args.interval)

        except KeyboardInterrupt:
            print("\n\nMonitoring stopped.")
            break
        except Exception as e:
            print(f"\nError: {e}")
            if args.once:
                break
            time.sleep(args.interval)


if __name__ == '__main__':
    main()
