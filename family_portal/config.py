"""設定管理 - 環境変数の型安全な読み込み"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class AppConfig:
    """アプリケーション設定"""
    project_id: str
    gcs_bucket_name: str
    admin_email: str = ""
    firebase_web_api_key: str = ""
    cors_origins: tuple[str, ...] = ("http://localhost:5173",)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """環境変数から設定を読み込む"""
        load_dotenv()

        project_id = os.getenv("PROJECT_ID")
        if not project_id:
            raise ValueError("PROJECT_ID is not set in environment")

        gcs_bucket_name = os.getenv("GCS_BUCKET_NAME")
        if not gcs_bucket_name:
            raise ValueError("GCS_BUCKET_NAME is not set in environment")

        cors_origins = tuple(
            o.strip()
            for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
            if o.strip()
        )

        return cls(
            project_id=project_id,
            gcs_bucket_name=gcs_bucket_name,
            admin_email=os.getenv("ADMIN_EMAIL", ""),
            firebase_web_api_key=os.getenv("FIREBASE_WEB_API_KEY", ""),
            cors_origins=cors_origins,
        )
