#!/usr/bin/env python3
"""
Enqueue video effect jobs.
Lists input videos in the bucket under a prefix and enqueues one effect job
per video to the effects SQS queue.

Usage:
    python enqueue_effects.py --prefix incoming/ --dry-run
    python enqueue_effects.py --prefix incoming/ --effect high-contrast
    python enqueue_effects.py --prefix incoming/ --output-prefix processed/ --limit 50
"""

import os
import sys
import argparse

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from dotenv import load_dotenv

# Load environment
load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))

from effects.presets import BUILTIN_PRESETS
from job_queue.sqs_queue import (
    get_sqs_client,
    get_or_create_queue,
    get_queue_stats,
    send_batch,
)
from util.s3_utils import get_s3_client, list_keys

VIDEO_EXTENSIONS = ('.mp4', '.mov', '.mkv', '.webm', '.avi', '.m4v')


def output_key_for(input_key: str, input_prefix: str, output_prefix: str) -> str:
    """Map an input key to its output key, always with an .mp4 extension."""
    relative = input_key[len(input_prefix):] if input_key.startswith(input_prefix) else input_key
    stem = os.path.splitext(relative)[0]
    return f"{output_prefix}{stem}.mp4"


def build_jobs(bucket, keys, input_prefix, output_prefix, effect=None):
    jobs = []
    for key in keys:
        job = {
            'bucket': bucket,
            'input_key': key,
            'output_key': output_key_for(key, input_prefix, output_prefix),
        }
        if effect:
            job['effect_type'] = effect
        jobs.append(job)
    return jobs


def enqueue_jobs(sqs_client, queue_url, jobs):
    """Enqueue effect jobs to SQS in batches of 10."""
    enqueued = 0
    failed = 0

    for i in range(0, len(jobs), 10):
        batch = jobs[i:i + 10]
        try:
            result = send_batch(sqs_client, queue_url, batch)
            enqueued += len(result['successful'])
            failed += len(result['failed'])
        except Exception as e:
            print(f"Error sending batch: {e}")
            failed += len(batch)

    return enqueued, failed


def main():
    parser = argparse.ArgumentParser(description='Enqueue video effect jobs')
    parser.add_argument('--bucket', type=str, default=None,
                        help='Bucket with input videos (default: EFFECTS_BUCKET)')
    parser.add_argument('--prefix', type=str, default='incoming/',
                        help='Input key prefix')
    parser.add_argument('--output-prefix', type=str, default='processed/',
                        help='Output key prefix')
    parser.add_argument('--effect', type=str, default=None,
                        help=f"Preset name ({', '.join(sorted(BUILTIN_PRESETS))}); worker default if omitted")
    parser.add_argument('--queue-name', type=str, default=None,
                        help='SQS queue name (default: EFFECTS_QUEUE_NAME)')
    parser.add_argument('--limit', type=int, default=None,
                        help='Maximum number of jobs to enqueue (default: all)')
    parser.add_argument('--dry-run', action='store_true',
                        help='List jobs without enqueuing')
    args = parser.parse_args()

    bucket = args.bucket or os.environ.get('EFFECTS_BUCKET')
    if not bucket:
        parser.error('--bucket or EFFECTS_BUCKET is required')
    if args.prefix == args.output_prefix:
        parser.error('--prefix and --output-prefix must differ')

    queue_name = args.queue_name or os.environ.get('EFFECTS_QUEUE_NAME', 'video-effects-jobs')
    region = os.environ.get('AWS_REGION', 'us-east-1')

    print("=" * 60)
    print("VIDEO EFFECTS - BATCH ENQUEUE")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Bucket:        {bucket}")
    print(f"  Input prefix:  {args.prefix}")
    print(f"  Output prefix: {args.output_prefix}")
    print(f"  Effect:        {args.effect or 'worker default'}")
    print(f"  Queue:         {queue_name}")
    print(f"  Dry run:       {args.dry_run}")

    s3_client = get_s3_client(region, os.environ.get('S3_ENDPOINT_URL') or None)
    keys = list_keys(s3_client, bucket, args.prefix, VIDEO_EXTENSIONS, args.limit)
    print(f"\nFound {len(keys)} input videos")

    if not keys:
        print("No files found!")
        return

    jobs = build_jobs(bucket, keys, args.prefix, args.output_prefix, args.effect)

    print(f"\nSample jobs:")
    for job in jobs[:5]:
        print(f"  - {job['input_key']} -> {job['output_key']}")
    if len(jobs) > 5:
        print(f"  ... and {len(jobs) - 5} more")

    if args.dry_run:
        print("\nDry run - no jobs enqueued")
        return

    sqs_client = get_sqs_client(region)
    queue_url = os.environ.get('EFFECTS_QUEUE_URL') or get_or_create_queue(sqs_client, queue_name)
    print(f"\nQueue URL: {queue_url}")

    enqueued, failed = enqueue_jobs(sqs_client, queue_url, jobs)

    print(f"\n" + "=" * 60)
    print("ENQUEUE COMPLETE")
    print("=" * 60)
    print(f"  Enqueued: {enqueued}")
    print(f"  Failed:   {failed}")

    stats = get_queue_stats(sqs_client, queue_url)
    print(f"\nQueue status:")
    print(f"  Pending:   {stats['pending']}")
    print(f"  In-flight: {stats['in_flight']}")


if __name__ == '__main__':
    main()
