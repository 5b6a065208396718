import boto3
from typing import BinaryIO
from botocore.client import Config
from learning.platform.ports.object_storage import ObjectStoragePort, StoredObject
from learning.core.config import Settings

class S3Storage(ObjectStoragePort):
    def __init__(self, settings: Settings, bucket: str):
        session = boto3.session.Session(
            aws_access_key_id=settings.S3_ACCESS_KEY,
            aws_secret_access_key=settings.S3_SECRET_KEY,
            region_name=settings.S3_REGION,
        )
        self.s3 = session.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT_URL,
            config=Config(signature_version="s3v4"),
        )
        self.bucket = bucket

    def list_objects(self, prefix: str = "") -> list[StoredObject]:
        paginator = self.s3.get_paginator("list_objects_v2")
        out: list[StoredObject] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for item in page.get("Contents", []):
                out.append(StoredObject(key=item["Key"], size=int(item["Size"])))
        return out

    def put_stream(self, key: str, stream: BinaryIO, content_type: str) -> None:
        # upload_fileobj switches to multipart for large videos
        self.s3.upload_fileobj(stream, self.bucket, key, ExtraArgs={"ContentType": content_type})

    def delete(self, key: str) -> None:
        self.s3.delete_object(Bucket=self.bucket, Key=key)

    def presign_download(self, key: str, expires_seconds: int = 900) -> str:
        return self.s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_seconds,
        )
