"""Ports - 外部サービスのインターフェース定義（ABC）

各Port（抽象基底クラス）は外部サービスとの契約を定義します。
実装クラス（Adapter）はこれらのABCを継承し、全ての抽象メソッドを実装する必要があります。

update() に渡す dict のキーはドメインモデルのフィールド名（snake_case）。
Firestore 上のフィールド名への変換は Adapter の責務。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from family_portal.domain.models import (
    Asset,
    Person,
    Photo,
    Principal,
    SignInResult,
    Transaction,
    Trip,
)


class IdentityProvider(ABC):
    """認証サービス（Firebase Auth等）"""

    @abstractmethod
    def verify_token(self, id_token: str) -> Principal:
        """IDトークンを検証してユーザーを返す。無効なら AuthError"""
        pass

    @abstractmethod
    def sign_in(self, email: str, password: str) -> SignInResult:
        """メール/パスワードでサインイン。失敗・メール未確認なら AuthError"""
        pass

    @abstractmethod
    def sign_out(self, uid: str) -> None:
        """リフレッシュトークンを失効させる"""
        pass

    @abstractmethod
    def send_verification_email(self, email: str, password: str) -> None:
        """確認メールを再送する"""
        pass

    @abstractmethod
    def send_password_reset(self, email: str) -> None:
        """パスワードリセットメールを送る"""
        pass

    @abstractmethod
    def change_password(
        self, principal: Principal, current_password: str, new_password: str
    ) -> None:
        """現在のパスワードで再認証してからパスワードを変更する"""
        pass


class MemberRepository(ABC):
    """家族メンバーの永続化（Firestore等）"""

    @abstractmethod
    def list(self) -> list[Person]:
        """全メンバーを姓の昇順で取得"""
        pass

    @abstractmethod
    def get(self, person_id: str) -> Person | None:
        """メンバーを取得。存在しない場合は None"""
        pass

    @abstractmethod
    def create(self, person: Person) -> str:
        """メンバーを作成。生成されたIDを返す"""
        pass

    @abstractmethod
    def update(self, person_id: str, data: dict[str, Any]) -> None:
        """メンバーを部分更新"""
        pass

    @abstractmethod
    def delete(self, person_id: str) -> None:
        """メンバーを削除（他メンバーからの参照は掃除しない）"""
        pass


class PhotoRepository(ABC):
    """写真レコードの永続化（家族写真・旅行写真共通）"""

    @abstractmethod
    def list(self, trip_id: str | None = None) -> list[Photo]:
        """写真一覧を新しい順で取得。trip_id 指定時はその旅行の写真のみ"""
        pass

    @abstractmethod
    def get(self, photo_id: str) -> Photo | None:
        pass

    @abstractmethod
    def create(self, photo: Photo) -> str:
        pass

    @abstractmethod
    def update(self, photo_id: str, data: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def delete(self, photo_id: str) -> None:
        pass


class TripRepository(ABC):
    """旅行レコードの永続化"""

    @abstractmethod
    def list(self) -> list[Trip]:
        pass

    @abstractmethod
    def get(self, trip_id: str) -> Trip | None:
        pass

    @abstractmethod
    def create(self, trip: Trip) -> str:
        pass

    @abstractmethod
    def update(self, trip_id: str, data: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def delete(self, trip_id: str) -> None:
        """旅行レコードのみ削除（写真は呼び出し側で先に削除する）"""
        pass


class TransactionRepository(ABC):
    """取引の永続化"""

    @abstractmethod
    def list(self) -> list[Transaction]:
        """全取引を日付の降順で取得"""
        pass

    @abstractmethod
    def list_between(self, start: datetime, end: datetime) -> list[Transaction]:
        """start <= date <= end の取引を取得"""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    @abstractmethod
    def get(self, transaction_id: str) -> Transaction | None:
        pass

    @abstractmethod
    def create(self, transaction: Transaction) -> str:
        pass

    @abstractmethod
    def update(self, transaction_id: str, data: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def delete(self, transaction_id: str) -> None:
        pass


class AssetRepository(ABC):
    """資産口座の永続化"""

    @abstractmethod
    def list(self) -> list[Asset]:
        """全資産を名前順で取得"""
        pass

    @abstractmethod
    def get(self, asset_id: str) -> Asset | None:
        pass

    @abstractmethod
    def create(self, asset: Asset) -> str:
        pass

    @abstractmethod
    def update(self, asset_id: str, data: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def delete(self, asset_id: str) -> None:
        pass


class BlobStorage(ABC):
    """バイナリファイルのアップロード・削除（GCS等）"""

    @abstractmethod
    def upload(self, blob_path: str, content: bytes, content_type: str) -> str:
        """ファイルをアップロード。表示用のダウンロードURLを返す"""
        pass

    @abstractmethod
    def delete(self, blob_path: str) -> None:
        """ファイルを削除。存在しない場合は何もしない"""
        pass
