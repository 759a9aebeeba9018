#!/usr/bin/env python3
"""CLI Entrypoint - 家系図データのメンテナンス

使い方:
    python -m family_portal.entrypoints.cli duplicates   # 重複候補を表示（見つかれば終了コード1）
    python -m family_portal.entrypoints.cli structure    # 家系の概要を表示

環境変数:
    PROJECT_ID: GCP プロジェクトID（必須）
    GCS_BUCKET_NAME: GCS バケット名（必須）
    LOG_LEVEL: ログレベル (DEBUG, INFO, WARNING, ERROR) デフォルト: INFO
"""

from __future__ import annotations

import argparse
import logging
import sys

from google.cloud import firestore

from family_portal.adapters.firestore_repository import FirestoreMemberRepository
from family_portal.config import AppConfig
from family_portal.domain.family_tree import FamilyGraph
from family_portal.domain.ports import MemberRepository
from family_portal.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_member_repository(config: AppConfig | None = None) -> MemberRepository:
    if config is None:
        config = AppConfig.from_env()
    logger.info("Connecting to Firestore: project_id=%s", config.project_id)
    return FirestoreMemberRepository(firestore.Client(project=config.project_id))


def report_duplicates(graph: FamilyGraph) -> int:
    """重複候補をログに出す。見つかったグループ数を返す"""
    groups = graph.find_duplicates()
    if not groups:
        logger.info("No duplicates found (%d members)", len(graph.members))
        return 0

    logger.warning("Found %d duplicate group(s)", len(groups))
    for group in groups:
        logger.warning("  %s [%s]", group.label, group.reason)
        for m in group.members:
            logger.warning(
                "    id=%s born=%s parents=%s spouse=%s",
                m.id,
                m.date_of_birth.isoformat() if m.date_of_birth else "-",
                ",".join(m.parent_ids) or "-",
                m.spouse_id or "-",
            )
    return len(groups)


def report_structure(graph: FamilyGraph) -> None:
    summary = graph.structure_summary()
    logger.info("Root members: %d", len(summary["roots"]))
    for root in summary["roots"]:
        person = root["person"]
        spouse = root["spouse"]
        logger.info(
            "  %s%s",
            person.full_name,
            f" + {spouse.full_name}" if spouse else "",
        )
        for child in root["children"]:
            logger.info("    - %s", child.full_name)
    logger.info(
        "Total=%d, with parents=%d, with spouse=%d",
        summary["total_members"],
        summary["members_with_parents"],
        summary["members_with_spouse"],
    )


def run(command: str, repo: MemberRepository) -> int:
    """コマンドを実行して終了コードを返す"""
    graph = FamilyGraph(repo.list())
    if command == "duplicates":
        return 1 if report_duplicates(graph) else 0
    if command == "structure":
        report_structure(graph)
        return 0
    raise ValueError(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> None:
    """メインエントリーポイント"""
    setup_logging()
    parser = argparse.ArgumentParser(description="Family tree maintenance")
    parser.add_argument("command", choices=["duplicates", "structure"])
    args = parser.parse_args(argv)

    try:
        exit_code = run(args.command, create_member_repository())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
