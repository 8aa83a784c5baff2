import logging
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

import config
from errors import UpstreamError

logger = logging.getLogger(__name__)


class ObjectStore:
    """Uploads bootcamp photos to an S3 bucket and returns their public URL."""

    def __init__(self, bucket: str, region: str, access_key=None, secret_key=None):
        self.bucket = bucket
        self.region = region
        self.client = boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )

    def upload(self, key: str, body: bytes, content_type: str) -> str:
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            logger.error("Upload of %s to bucket %s failed: %s", key, self.bucket, e)
            raise UpstreamError(
                "There was an error while uploading the file. Please contact the system administrator"
            )
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


@lru_cache
def get_storage() -> ObjectStore:
    return ObjectStore(config.AWS_BUCKET_NAME, config.AWS_REGION, config.AWS_ID, config.AWS_SECRET)
