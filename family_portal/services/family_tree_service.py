"""FamilyTreeService - 家系図メンバーの登録・編集・削除・並び替え

メンバーの関係解決は FamilyGraph（domain.family_tree）が担当し、
このサービスは Repository / BlobStorage の呼び出し順序だけを持つ。
キャッシュは持たず、呼ばれるたびに Firestore から読み直す。
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import replace
from typing import Any

from family_portal.domain.errors import NotFoundError, ValidationError
from family_portal.domain.family_tree import FamilyGraph
from family_portal.domain.models import Person
from family_portal.domain.ports import BlobStorage, MemberRepository

logger = logging.getLogger(__name__)

PROFILE_PICTURE_PREFIX = "profilePictures"


class FamilyTreeService:
    """家族メンバーのライフサイクル管理"""

    def __init__(self, member_repo: MemberRepository, storage: BlobStorage) -> None:
        """
        Args:
            member_repo: メンバーの永続化
            storage: プロフィール画像の保存先
        """
        self._members = member_repo
        self._storage = storage

    def load_graph(self) -> FamilyGraph:
        """最新のメンバー一覧から関係グラフを作る"""
        return FamilyGraph(self._members.list())

    def get_member(self, person_id: str) -> Person:
        person = self._members.get(person_id)
        if person is None:
            raise NotFoundError(f"Member not found: {person_id}")
        return person

    def add_member(self, person: Person) -> Person:
        """
        メンバーを追加する。parent_ids / spouse_id の参照先の存在は確認しない。

        Returns:
            ID が採番された Person
        """
        _validate_names(person.first_name, person.last_name)
        person_id = self._members.create(person)
        logger.info("Added member: id=%s, created_by=%s", person_id, person.created_by)
        return replace(person, id=person_id)

    def update_member(self, person_id: str, data: dict[str, Any]) -> Person:
        """指定フィールドのみ更新する（last-write-wins）"""
        current = self.get_member(person_id)
        if "first_name" in data or "last_name" in data:
            _validate_names(
                data.get("first_name", current.first_name),
                data.get("last_name", current.last_name),
            )
        if person_id in (data.get("parent_ids") or []) or data.get("spouse_id") == person_id:
            raise ValidationError("A member cannot be related to themselves")
        self._members.update(person_id, data)
        return replace(current, **data)

    def delete_member(self, person_id: str) -> None:
        """
        メンバーを削除する。

        プロフィール画像の削除はベストエフォートで、失敗してもレコードは削除する。
        他メンバーの parent_ids / spouse_id に残った参照は掃除しない。
        """
        person = self.get_member(person_id)
        if person.profile_picture_path:
            self._discard_file(person.profile_picture_path)
        self._members.delete(person_id)
        logger.info("Deleted member: id=%s", person_id)

    def upload_profile_picture(
        self, person_id: str, content: bytes, filename: str, content_type: str
    ) -> Person:
        """プロフィール画像を差し替える（古い画像はベストエフォートで削除）"""
        person = self.get_member(person_id)
        _validate_image(content, content_type)

        ext = os.path.splitext(filename)[1].lower()
        blob_path = f"{PROFILE_PICTURE_PREFIX}/{person_id}/{uuid.uuid4().hex}{ext}"
        url = self._storage.upload(blob_path, content, content_type)

        changes = {"profile_picture_url": url, "profile_picture_path": blob_path}
        self._members.update(person_id, changes)
        if person.profile_picture_path and person.profile_picture_path != blob_path:
            self._discard_file(person.profile_picture_path)
        logger.info("Updated profile picture: id=%s, path=%s", person_id, blob_path)
        return replace(person, **changes)

    def move_member(self, person_id: str, direction: str) -> dict[str, int]:
        """
        表示順を左右に1段動かす（配偶者も同じ向きに1段動く）。

        Returns:
            {person_id: new_display_order}
        """
        graph = self.load_graph()
        if graph.get(person_id) is None:
            raise NotFoundError(f"Member not found: {person_id}")
        try:
            moves = graph.display_order_moves(person_id, direction)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        for member_id, order in moves.items():
            self._members.update(member_id, {"display_order": order})
        logger.info("Moved member: id=%s, direction=%s, moves=%s", person_id, direction, moves)
        return moves

    def _discard_file(self, blob_path: str) -> None:
        try:
            self._storage.delete(blob_path)
        except Exception as e:
            logger.warning("Failed to delete profile picture: path=%s, error=%s", blob_path, e)


def _validate_names(first_name: str | None, last_name: str | None) -> None:
    if not (first_name or "").strip() or not (last_name or "").strip():
        raise ValidationError("First name and last name are required")


def _validate_image(content: bytes, content_type: str) -> None:
    if not content:
        raise ValidationError("File is empty")
    if not (content_type or "").startswith("image/"):
        raise ValidationError(f"Unsupported file type: {content_type}")
