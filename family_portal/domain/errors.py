"""ドメイン固有の例外クラス"""


class FamilyPortalError(Exception):
    """Family Portal の基底例外"""

    pass


class AuthError(FamilyPortalError):
    """認証エラー（認証情報の誤り、メール未確認等）"""

    pass


class ValidationError(FamilyPortalError):
    """入力検証エラー（ネットワーク呼び出し前に検出）"""

    pass


class NotFoundError(FamilyPortalError):
    """対象レコードが存在しない"""

    pass


class StoreError(FamilyPortalError):
    """外部サービス（Firestore / GCS / Identity Toolkit）の呼び出し失敗"""

    pass


class PartialDeleteError(FamilyPortalError):
    """複数ステップの削除が途中で失敗した（ロールバック・リトライなし）"""

    def __init__(self, trip_id: str, deleted_photos: int, remaining_photos: int) -> None:
        super().__init__(
            f"Trip {trip_id} was only partially deleted: "
            f"{deleted_photos} photo(s) deleted, {remaining_photos} remaining"
        )
        self.trip_id = trip_id
        self.deleted_photos = deleted_photos
        self.remaining_photos = remaining_photos
