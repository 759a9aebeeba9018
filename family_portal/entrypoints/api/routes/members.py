"""家系図メンバー API ルート

GET    /api/members                       → 200 [Member...]
GET    /api/members/tree                  → 200 { generations, rows }
GET    /api/members/duplicates            → 200 [DuplicateGroup...]
POST   /api/members                       → 201 Member
GET    /api/members/{id}/relations        → 200 { member, parents, children, siblings, spouse }
PUT    /api/members/{id}                  → 200 Member
DELETE /api/members/{id}                  → 204
POST   /api/members/{id}/profile-picture  → 200 Member
POST   /api/members/{id}/move             → 200 { moves }
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, UploadFile, status
from pydantic import BaseModel

from family_portal.domain.errors import NotFoundError
from family_portal.domain.family_tree import TreeNode
from family_portal.domain.models import DuplicateGroup, Gender, Person, Principal
from family_portal.entrypoints.api.deps import get_family_tree_service, get_principal
from family_portal.services import FamilyTreeService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/members", tags=["members"])


class MemberRequest(BaseModel):
    first_name: str = ""
    last_name: str = ""
    date_of_birth: date | None = None
    date_of_death: date | None = None
    place_of_birth: str = ""
    gender: Gender | None = None
    biography: str = ""
    parent_ids: list[str] = []
    spouse_id: str | None = None
    display_order: int | None = None


class MemberResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    full_name: str
    date_of_birth: date | None
    date_of_death: date | None
    place_of_birth: str
    gender: Gender | None
    biography: str
    profile_picture_url: str
    parent_ids: list[str]
    spouse_id: str | None
    display_order: int | None
    created_by: str


class TreeNodeResponse(BaseModel):
    member: MemberResponse
    spouse: MemberResponse | None = None
    children: list[TreeNodeResponse] = []


TreeNodeResponse.model_rebuild()


class TreeResponse(BaseModel):
    generations: list[list[MemberResponse]]
    rows: list[list[TreeNodeResponse]]


class DuplicateGroupResponse(BaseModel):
    label: str
    reason: str
    members: list[MemberResponse]


class RelationsResponse(BaseModel):
    member: MemberResponse
    parents: list[MemberResponse]
    children: list[MemberResponse]
    siblings: list[MemberResponse]
    spouse: MemberResponse | None


class MoveRequest(BaseModel):
    direction: Literal["left", "right"]


class MoveResponse(BaseModel):
    moves: dict[str, int]


def _to_response(p: Person) -> MemberResponse:
    return MemberResponse(
        id=p.id,
        first_name=p.first_name,
        last_name=p.last_name,
        full_name=p.full_name,
        date_of_birth=p.date_of_birth,
        date_of_death=p.date_of_death,
        place_of_birth=p.place_of_birth,
        gender=p.gender,
        biography=p.biography,
        profile_picture_url=p.profile_picture_url,
        parent_ids=list(p.parent_ids),
        spouse_id=p.spouse_id,
        display_order=p.display_order,
        created_by=p.created_by,
    )


def _node_response(node: TreeNode) -> TreeNodeResponse:
    return TreeNodeResponse(
        member=_to_response(node.person),
        spouse=_to_response(node.spouse) if node.spouse else None,
        children=[_node_response(c) for c in node.children],
    )


def _duplicate_response(group: DuplicateGroup) -> DuplicateGroupResponse:
    return DuplicateGroupResponse(
        label=group.label,
        reason=group.reason,
        members=[_to_response(m) for m in group.members],
    )


@router.get("", response_model=list[MemberResponse])
async def list_members(
    principal: Principal = Depends(get_principal),
    service: FamilyTreeService = Depends(get_family_tree_service),
) -> list[MemberResponse]:
    """メンバー一覧（姓の昇順）"""
    return [_to_response(m) for m in service.load_graph().members]


@router.get("/tree", response_model=TreeResponse)
async def get_tree(
    principal: Principal = Depends(get_principal),
    service: FamilyTreeService = Depends(get_family_tree_service),
) -> TreeResponse:
    """世代分けと描画用の2段構成"""
    graph = service.load_graph()
    return TreeResponse(
        generations=[
            [_to_response(m) for m in generation]
            for generation in graph.build_generations()
        ],
        rows=[[_node_response(n) for n in row] for row in graph.tree_rows()],
    )


@router.get("/duplicates", response_model=list[DuplicateGroupResponse])
async def list_duplicates(
    principal: Principal = Depends(get_principal),
    service: FamilyTreeService = Depends(get_family_tree_service),
) -> list[DuplicateGroupResponse]:
    """重複候補のメンバーグループ"""
    groups = service.load_graph().find_duplicates()
    if groups:
        logger.info("Duplicate member groups found: %d", len(groups))
    return [_duplicate_response(g) for g in groups]


@router.post("", status_code=status.HTTP_201_CREATED, response_model=MemberResponse)
async def create_member(
    body: MemberRequest,
    principal: Principal = Depends(get_principal),
    service: FamilyTreeService = Depends(get_family_tree_service),
) -> MemberResponse:
    """メンバーを追加する"""
    person = Person(
        id="",
        first_name=body.first_name.strip(),
        last_name=body.last_name.strip(),
        date_of_birth=body.date_of_birth,
        date_of_death=body.date_of_death,
        place_of_birth=body.place_of_birth,
        gender=body.gender,
        biography=body.biography,
        parent_ids=[p for p in body.parent_ids if p],
        spouse_id=body.spouse_id or None,
        display_order=body.display_order,
        created_by=principal.email,
    )
    created = service.add_member(person)
    logger.info("Member created: id=%s, by=%s", created.id, principal.email)
    return _to_response(created)


@router.get("/{member_id}/relations", response_model=RelationsResponse)
async def get_relations(
    member_id: str,
    principal: Principal = Depends(get_principal),
    service: FamilyTreeService = Depends(get_family_tree_service),
) -> RelationsResponse:
    """親・子・兄弟・配偶者（参照先が存在しないものは含めない）"""
    graph = service.load_graph()
    person = graph.get(member_id)
    if person is None:
        raise NotFoundError(f"Member not found: {member_id}")
    spouse = graph.spouse_of(person)
    return RelationsResponse(
        member=_to_response(person),
        parents=[_to_response(m) for m in graph.parents_of(person)],
        children=[_to_response(m) for m in graph.children_of(person.id)],
        siblings=[_to_response(m) for m in graph.siblings_of(person)],
        spouse=_to_response(spouse) if spouse else None,
    )


@router.put("/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: str,
    body: MemberRequest,
    principal: Principal = Depends(get_principal),
    service: FamilyTreeService = Depends(get_family_tree_service),
) -> MemberResponse:
    """メンバーを更新する（送られたフィールドのみ・後勝ち）"""
    data = body.model_dump(exclude_unset=True)
    for key in ("first_name", "last_name"):
        if key in data:
            data[key] = (data[key] or "").strip()
    if "parent_ids" in data:
        data["parent_ids"] = [p for p in data["parent_ids"] or [] if p]
    if "spouse_id" in data:
        data["spouse_id"] = data["spouse_id"] or None
    updated = service.update_member(member_id, data)
    logger.info("Member updated: id=%s, by=%s", member_id, principal.email)
    return _to_response(updated)


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_member(
    member_id: str,
    principal: Principal = Depends(get_principal),
    service: FamilyTreeService = Depends(get_family_tree_service),
) -> None:
    """メンバーを削除する（他メンバーからの参照は残る）"""
    service.delete_member(member_id)
    logger.info("Member deleted: id=%s, by=%s", member_id, principal.email)


@router.post("/{member_id}/profile-picture", response_model=MemberResponse)
async def upload_profile_picture(
    member_id: str,
    file: UploadFile,
    principal: Principal = Depends(get_principal),
    service: FamilyTreeService = Depends(get_family_tree_service),
) -> MemberResponse:
    """プロフィール画像をアップロードする（トリミング済みの画像を受け取る）"""
    content = await file.read()
    updated = service.upload_profile_picture(
        member_id,
        content,
        file.filename or "",
        file.content_type or "",
    )
    return _to_response(updated)


@router.post("/{member_id}/move", response_model=MoveResponse)
async def move_member(
    member_id: str,
    body: MoveRequest,
    principal: Principal = Depends(get_principal),
    service: FamilyTreeService = Depends(get_family_tree_service),
) -> MoveResponse:
    """表示順を左右に動かす（配偶者も一緒に動く）"""
    return MoveResponse(moves=service.move_member(member_id, body.direction))
