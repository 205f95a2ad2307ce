"""GCS source and S3 destination adapters used by the migration tool"""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

import boto3
import botocore.session
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import ClientError, NoCredentialsError
from google.cloud import storage

logger = logging.getLogger(__name__)

PART_SIZE = 10 * 1024 * 1024
PART_CONCURRENCY = 5
MISSING_KEY_CODES = ('404', 'NoSuchKey', 'NotFound')


def gs_uri(bucket: str, name: str = '') -> str:
    return f"gs://{bucket}/{name}" if name else f"gs://{bucket}"


def s3_uri(bucket: str, key: str = '') -> str:
    return f"s3://{bucket}/{key}" if key else f"s3://{bucket}"


def create_gcs_client(project: Optional[str] = None) -> storage.Client:
    return storage.Client(project=project) if project else storage.Client()


def create_s3_client(region: Optional[str] = None, credentials_file: Optional[str] = None, profile: Optional[str] = None):
    core_session = botocore.session.Session(profile=profile or None)
    if credentials_file:
        core_session.set_config_variable('credentials_file', credentials_file)
    session = boto3.Session(botocore_session=core_session, region_name=region or None)
    # resolve now so missing credentials fail at startup instead of on every object
    if session.get_credentials() is None:
        raise NoCredentialsError()
    return session.client('s3')


@dataclass(frozen=True)
class StoredObject:
    name: str
    size: Optional[int] = None


class CountingReader:
    """File-like wrapper that counts the bytes handed to the uploader."""

    def __init__(self, raw: BinaryIO):
        self._raw = raw
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self._raw.read(size)
        self.bytes_read += len(chunk)
        return chunk

    def close(self):
        self._raw.close()


class GCSSource:
    def __init__(self, client: storage.Client, bucket: str):
        self.client = client
        self.bucket_name = bucket
        self.bucket = client.bucket(bucket)

    def list_objects(self, prefix: str = '') -> Iterator[StoredObject]:
        for blob in self.client.list_blobs(self.bucket, prefix=prefix or None):
            yield StoredObject(name=blob.name, size=blob.size)

    def open(self, name: str) -> BinaryIO:
        return self.bucket.blob(name).open('rb')


class S3Destination:
    def __init__(self, client, bucket: str, part_size: int = PART_SIZE, part_concurrency: int = PART_CONCURRENCY):
        self.client = client
        self.bucket = bucket
        self.transfer_config = TransferConfig(
            multipart_threshold=part_size,
            multipart_chunksize=part_size,
            max_concurrency=part_concurrency,
        )

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as exc:
            code = exc.response.get('Error', {}).get('Code', '')
            if code in MISSING_KEY_CODES:
                return False
            raise

    def upload_stream(self, reader: BinaryIO, key: str):
        # upload_fileobj aborts the multipart upload itself when a part fails
        self.client.upload_fileobj(reader, self.bucket, key, Config=self.transfer_config)
