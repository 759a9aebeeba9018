"""写真リアクション（絵文字）の付け外し"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

# UI が提示する絵文字。これ以外も受け付ける（保存時に制限はしない）
DEFAULT_REACTION_EMOJIS = ("❤️", "😂", "😮", "😢", "👍", "🎉")


def toggle_reaction(
    reactions: Mapping[str, Sequence[str]], emoji: str, user_id: str
) -> dict[str, list[str]]:
    """
    user_id のリアクションを付け外しした新しい dict を返す（引数は変更しない）。

    付いていなければ追加、付いていれば削除する。削除で空になった絵文字の
    キーは dict から取り除くため、同じ操作を2回行うと元の状態に戻る。
    """
    result = {key: list(users) for key, users in reactions.items()}
    users = result.get(emoji, [])
    if user_id in users:
        users = [u for u in users if u != user_id]
    else:
        users = users + [user_id]

    if users:
        result[emoji] = users
    else:
        result.pop(emoji, None)
    return result


def reaction_counts(reactions: Mapping[str, Sequence[str]]) -> dict[str, int]:
    return {emoji: len(users) for emoji, users in reactions.items() if users}
