"""
S3 storage utility module for the video effects pipeline.
Works against AWS S3 or any S3-compatible endpoint (MinIO) via boto3.
All helpers take the client explicitly; nothing is cached at module level.
"""

import logging
import os
from typing import Dict, Optional

import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from workers.errors import StorageError

logger = logging.getLogger(__name__)

VIDEO_UPLOAD_ARGS = {
    'ContentType': 'video/mp4',
    'ContentDisposition': 'inline',
}


def get_s3_client(region: str = 'us-east-1', endpoint_url: Optional[str] = None):
    """
    Create an S3 client.

    Credentials come from the standard boto3 chain (environment, instance
    profile). endpoint_url points the client at an S3-compatible store.

    Args:
        region: AWS region
        endpoint_url: Optional custom endpoint (e.g. http://localhost:9000)

    Returns:
        boto3 S3 client
    """
    if endpoint_url:
        return boto3.client(
            's3',
            region_name=region,
            endpoint_url=endpoint_url,
            config=Config(signature_version='s3v4', retries={'max_attempts': 5, 'mode': 'adaptive'})
        )
    return boto3.client(
        's3',
        region_name=region,
        config=Config(retries={'max_attempts': 5, 'mode': 'adaptive'})
    )


def ensure_bucket_exists(client, bucket: str, region: str = 'us-east-1') -> bool:
    """
    Create bucket if it doesn't exist.

    Returns:
        bool: True if the bucket was created
    """
    try:
        client.head_bucket(Bucket=bucket)
        return False
    except ClientError as e:
        if e.response['Error']['Code'] not in ('404', 'NoSuchBucket'):
            raise

    params = {'Bucket': bucket}
    # us-east-1 rejects an explicit LocationConstraint
    if region and region != 'us-east-1':
        params['CreateBucketConfiguration'] = {'LocationConstraint': region}
    client.create_bucket(**params)
    logger.info("Created bucket: %s", bucket)
    return True


def download_file(client, bucket: str, key: str, local_path: str):
    """
    Download an object to a local path.

    Raises:
        StorageError: object missing, access denied or transfer failure
    """
    os.makedirs(os.path.dirname(local_path) or '.', exist_ok=True)
    try:
        client.download_file(bucket, key, local_path)
    except (ClientError, BotoCoreError, Boto3Error) as e:
        raise StorageError('download', bucket, key, e) from e
    logger.debug("Downloaded s3://%s/%s -> %s", bucket, key, local_path)


def upload_file(client, local_path: str, bucket: str, key: str, extra_args: Optional[Dict] = None):
    """
    Upload a local file, optionally with object metadata (ContentType etc).

    Raises:
        StorageError: transfer failure
    """
    try:
        client.upload_file(local_path, bucket, key, ExtraArgs=dict(extra_args or {}))
    except (ClientError, BotoCoreError, Boto3Error) as e:
        raise StorageError('upload', bucket, key, e) from e
    logger.debug("Uploaded %s -> s3://%s/%s", local_path, bucket, key)


def delete_object(client, bucket: str, key: str):
    """
    Delete an object. S3 treats deleting a missing key as success.

    Raises:
        StorageError: request failure
    """
    try:
        client.delete_object(Bucket=bucket, Key=key)
    except (ClientError, BotoCoreError, Boto3Error) as e:
        raise StorageError('delete', bucket, key, e) from e
    logger.debug("Deleted s3://%s/%s", bucket, key)


def object_exists(client, bucket: str, key: str) -> bool:
    """Check if object exists in bucket."""
    try:
        client.head_object(Bucket=bucket, Key=key)
        return True
    except ClientError as e:
        if e.response['Error']['Code'] in ('404', 'NoSuchKey', 'NotFound'):
            return False
        raise


def bucket_stats(client, bucket: str, prefix: str = '') -> Dict:
    """Count objects and total size under a prefix."""
    paginator = client.get_paginator('list_objects_v2')

    total_objects = 0
    total_size = 0
    for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
        for obj in page.get('Contents', []):
            total_objects += 1
            total_size += obj['Size']

    return {
        'objects': total_objects,
        'size_gb': total_size / (1024 ** 3),
    }


def list_keys(client, bucket: str, prefix: str = '', suffixes=None, limit: Optional[int] = None):
    """List object keys under a prefix, optionally filtered by suffix."""
    keys = []
    paginator = client.get_paginator('list_objects_v2')

    for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
        for obj in page.get('Contents', []):
            key = obj['Key']
            if suffixes and not key.lower().endswith(tuple(suffixes)):
                continue
            keys.append(key)
            if limit and len(keys) >= limit:
                return keys

    return keys
