"""Cloud Storage Adapter

BlobStorage ABC の Google Cloud Storage 実装。
家族写真・旅行写真・プロフィール画像の保存と削除を行う。
"""

from __future__ import annotations

import logging

from google.api_core.exceptions import NotFound
from google.cloud import storage

from family_portal.domain.ports import BlobStorage

logger = logging.getLogger(__name__)


class GCSBlobStorage(BlobStorage):
    """
    Google Cloud Storage を使った BlobStorage 実装。

    全ファイルは単一バケット内の blob_path で管理する。
    パス規約:
      familyPhotos/{timestamp}_{filename}
      tripPhotos/{tripId}/{timestamp}_{filename}
      profilePictures/{memberId}/{uuid}{ext}
    """

    def __init__(self, bucket_name: str, client: storage.Client | None = None) -> None:
        """
        Args:
            bucket_name: GCS バケット名
            client: 初期化済みの GCS クライアント（省略時は ADC で自動初期化）
        """
        self._client = client or storage.Client()
        self._bucket = self._client.bucket(bucket_name)
        self._bucket_name = bucket_name

    def upload(self, blob_path: str, content: bytes, content_type: str) -> str:
        """
        ファイルを GCS にアップロード。

        Args:
            blob_path: GCS 上のパス（例: "familyPhotos/1700000000000_beach.jpg"）
            content: バイナリ内容
            content_type: MIME タイプ（例: "image/jpeg"）

        Returns:
            表示用のURL（blob の公開URL）
        """
        blob = self._bucket.blob(blob_path)
        blob.upload_from_string(content, content_type=content_type)
        logger.info(
            "Uploaded: bucket=%s, path=%s, size=%d bytes",
            self._bucket_name,
            blob_path,
            len(content),
        )
        return blob.public_url

    def delete(self, blob_path: str) -> None:
        """
        GCS からファイルを削除。

        ファイルが存在しない場合は何もしない（NotFound 以外の失敗は送出する）。
        """
        blob = self._bucket.blob(blob_path)
        try:
            blob.delete()
        except NotFound:
            logger.info(
                "Already deleted: bucket=%s, path=%s", self._bucket_name, blob_path
            )
            return
        logger.info("Deleted: bucket=%s, path=%s", self._bucket_name, blob_path)
