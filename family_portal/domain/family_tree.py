"""家系図の関係解決と世代レイアウト

フラットな Person のリストから親・子・兄弟・配偶者を解決し、
表示用の世代分け（generations）を計算する。

Firestore 上の parent_ids / spouse_id は参照整合性が保証されないため、
存在しない ID は「見つからない」として黙ってスキップする（例外は投げない）。
I/O は行わない純粋な計算で、メンバー一覧が変わるたびに作り直す前提。

世代分けのルール:
  1. 第0世代 = root_members() を display_order 昇順（未設定は 1000）
  2. 前の世代を順に走査し、未配置の子を
     display_order → 生年月日 → 氏名 の順で並べて追加。
     子の直後に（未配置なら）その配偶者を並べる
  3. 1人は最初に到達した世代にのみ配置。最大 10 世代で打ち切り
  4. どの root からも到達しないメンバーは最後の世代にまとめる
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import cmp_to_key

from family_portal.domain.models import DuplicateGroup, Person

logger = logging.getLogger(__name__)

_ROOT_DEFAULT_ORDER = 1000
_MOVE_DEFAULT_ORDER = 500
_MOVE_STEP = 100
_MAX_GENERATIONS = 10
_MAX_NESTED_DEPTH = 3  # 子・孫・ひ孫


@dataclass(frozen=True)
class TreeNode:
    """描画用のノード（本人 + 配偶者 + ネストされた子孫）"""

    person: Person
    spouse: Person | None = None
    children: list[TreeNode] = field(default_factory=list)


class FamilyGraph:
    """
    家族メンバーのスナップショットから作る id キーの関係グラフ。

    Usage:
        graph = FamilyGraph(member_repo.list())
        generations = graph.build_generations()
    """

    def __init__(self, members: Iterable[Person]) -> None:
        self._members = list(members)
        self._by_id: dict[str, Person] = {}
        for m in self._members:
            self._by_id.setdefault(m.id, m)

    @property
    def members(self) -> list[Person]:
        return list(self._members)

    def get(self, person_id: str | None) -> Person | None:
        if not person_id:
            return None
        return self._by_id.get(person_id)

    # ── 関係の解決 ────────────────────────────────────────────────────────────

    def parents_of(self, person: Person) -> list[Person]:
        """parent_ids に含まれるメンバー（件数は検証しない）"""
        parent_ids = set(person.parent_ids or [])
        if not parent_ids:
            return []
        return [m for m in self._members if m.id in parent_ids]

    def children_of(self, person_id: str) -> list[Person]:
        """parent_ids に person_id を含むメンバー（配列内の位置は問わない）"""
        return [m for m in self._members if person_id in (m.parent_ids or [])]

    def siblings_of(self, person: Person) -> list[Person]:
        """親を1人以上共有する本人以外のメンバー。親がいなければ空"""
        parent_ids = set(person.parent_ids or [])
        if not parent_ids:
            return []
        return [
            m
            for m in self._members
            if m.id != person.id and parent_ids.intersection(m.parent_ids or [])
        ]

    def spouse_of(self, person: Person) -> Person | None:
        """spouse_id が指すメンバー。参照先が無ければ None"""
        return self.get(person.spouse_id)

    def root_members(self) -> list[Person]:
        """
        親のいないメンバー。

        ただし配偶者に親がいる場合（家系に嫁いだ・婿入りした人）は除外する。
        配偶者側の家系から辿れるため、第0世代に二重に出さない。
        """
        roots = []
        for m in self._members:
            if m.parent_ids:
                continue
            spouse = self.spouse_of(m)
            if spouse is not None and spouse.parent_ids:
                continue
            roots.append(m)
        return roots

    # ── 世代レイアウト ────────────────────────────────────────────────────────

    def build_generations(self) -> list[list[Person]]:
        """世代ごとのメンバー一覧を返す。全員がちょうど1回ずつ現れる"""
        generations, unreached = self._layout()
        if unreached:
            generations.append(unreached)
        return generations

    def _layout(self) -> tuple[list[list[Person]], list[Person]]:
        """(root から到達した世代, どこからも到達しなかったメンバー)"""
        placed: set[str] = set()
        generations: list[list[Person]] = []

        roots = sorted(
            self.root_members(),
            key=lambda m: (
                m.display_order if m.display_order is not None else _ROOT_DEFAULT_ORDER
            ),
        )
        current: list[Person] = []
        for root in roots:
            if root.id not in placed:
                current.append(root)
                placed.add(root.id)

        while current:
            generations.append(current)
            if len(generations) == _MAX_GENERATIONS:
                break
            next_gen: list[Person] = []
            for parent in current:
                children = [c for c in self.children_of(parent.id) if c.id not in placed]
                for child in sorted(children, key=cmp_to_key(_compare_siblings)):
                    if child.id in placed:
                        continue
                    next_gen.append(child)
                    placed.add(child.id)
                    spouse = self.spouse_of(child)
                    if spouse is not None and spouse.id not in placed:
                        next_gen.append(spouse)
                        placed.add(spouse.id)
            current = next_gen

        unreached = [m for m in self._members if m.id not in placed]
        if unreached:
            logger.debug("Members unreachable from any root: %d", len(unreached))
        return generations, unreached

    def tree_rows(self) -> list[list[TreeNode]]:
        """
        描画用の2段構成を返す。

        上位2世代だけを独立した行にし、それより下は第2行のノードの下に
        子・孫・ひ孫としてネストする（ひ孫より深い世代は描画しない）。
        どの root からも到達しないメンバーは含まない。
        """
        generations, _ = self._layout()
        top = generations[:2]

        used: set[str] = set()
        rows: list[list[TreeNode]] = []
        for depth, generation in enumerate(top):
            nested = _MAX_NESTED_DEPTH if depth == 1 else 0
            row = []
            for person in generation:
                if person.id in used:
                    continue
                row.append(self._couple_node(person, used, nested))
            rows.append(row)
        return rows

    def _couple_node(self, person: Person, used: set[str], depth: int) -> TreeNode:
        used.add(person.id)
        spouse = self.spouse_of(person)
        if spouse is not None and spouse.id in used:
            spouse = None
        if spouse is not None:
            used.add(spouse.id)

        children: list[TreeNode] = []
        if depth > 0:
            candidates = self.children_of(person.id)
            if spouse is not None:
                known = {c.id for c in candidates}
                candidates += [
                    c for c in self.children_of(spouse.id) if c.id not in known
                ]
            for child in sorted(candidates, key=cmp_to_key(_compare_siblings)):
                if child.id not in used:
                    children.append(self._couple_node(child, used, depth - 1))
        return TreeNode(person=person, spouse=spouse, children=children)

    # ── 並び替え ──────────────────────────────────────────────────────────────

    def display_order_moves(self, person_id: str, direction: str) -> dict[str, int]:
        """
        左右移動後の display_order を計算する。

        それぞれの現在値（未設定は 500）から 100 ずつ増減し、上下限は設けない。
        配偶者がいれば同じ向きに 100 だけ一緒に動かす。

        Returns:
            {person_id: new_display_order}（対象が存在しない場合は空）
        """
        if direction not in ("left", "right"):
            raise ValueError(f"direction must be 'left' or 'right': {direction}")
        person = self.get(person_id)
        if person is None:
            return {}
        step = -_MOVE_STEP if direction == "left" else _MOVE_STEP
        moves = {person.id: _current_order(person) + step}
        spouse = self.spouse_of(person)
        if spouse is not None:
            moves[spouse.id] = _current_order(spouse) + step
        return moves

    # ── 重複検出 ──────────────────────────────────────────────────────────────

    def find_duplicates(self) -> list[DuplicateGroup]:
        """
        重複候補を返す。

        - 氏名（小文字化・trim）が一致するグループ
        - 氏名 + 生年月日 + 没年月日 が一致するグループ
        後者のうち、前者で全く同じメンバー構成が報告済みのものは除外する。
        """
        name_groups: dict[str, list[Person]] = {}
        date_groups: dict[tuple[str, str, str], list[Person]] = {}
        for m in self._members:
            name_key = _name_key(m.first_name, m.last_name)
            name_groups.setdefault(name_key, []).append(m)
            date_key = (name_key, _date_str(m.date_of_birth), _date_str(m.date_of_death))
            date_groups.setdefault(date_key, []).append(m)

        duplicates = [
            DuplicateGroup(label=name, members=members, reason="name")
            for name, members in name_groups.items()
            if len(members) > 1
        ]
        reported = {frozenset(m.id for m in g.members) for g in duplicates}

        for (name, born, died), members in date_groups.items():
            if len(members) < 2:
                continue
            if frozenset(m.id for m in members) in reported:
                continue
            label = f"{name} (born {born or 'unknown'}, died {died or 'unknown'})"
            duplicates.append(
                DuplicateGroup(label=label, members=members, reason="name_and_dates")
            )
        return duplicates

    def find_members_by_name(self, first_name: str, last_name: str) -> list[Person]:
        """氏名（大文字小文字・前後空白を無視）で検索"""
        target = _name_key(first_name, last_name)
        return [
            m for m in self._members if _name_key(m.first_name, m.last_name) == target
        ]

    def structure_summary(self) -> dict:
        """
        家系の概要（CLI の structure コマンド用）。

        ここでの root は単純に「親のいないメンバー」。
        """
        roots = []
        for m in self._members:
            if m.parent_ids:
                continue
            roots.append(
                {
                    "person": m,
                    "spouse": self.spouse_of(m),
                    "children": self.children_of(m.id),
                }
            )
        return {
            "roots": roots,
            "total_members": len(self._members),
            "members_with_parents": sum(1 for m in self._members if m.parent_ids),
            "members_with_spouse": sum(1 for m in self._members if m.spouse_id),
        }


def _compare_siblings(a: Person, b: Person) -> int:
    """兄弟の並び順: display_order（両方設定時）→ 生年月日 → 氏名"""
    if (
        a.display_order is not None
        and b.display_order is not None
        and a.display_order != b.display_order
    ):
        return -1 if a.display_order < b.display_order else 1
    if a.date_of_birth and b.date_of_birth and a.date_of_birth != b.date_of_birth:
        return -1 if a.date_of_birth < b.date_of_birth else 1
    name_a, name_b = a.full_name, b.full_name
    if name_a == name_b:
        return 0
    return -1 if name_a < name_b else 1


def _name_key(first_name: str, last_name: str) -> str:
    return f"{first_name or ''} {last_name or ''}".lower().strip()


def _date_str(value) -> str:
    return value.isoformat() if value else ""


def _current_order(person: Person) -> int:
    if person.display_order is None:
        return _MOVE_DEFAULT_ORDER
    return person.display_order
