"""
Preview aggregation for import sessions.

Reduces the staged pieces to per-client, per-project counts. The result
depends only on the multiset of rows: groups and projects are sorted by
their keys afterwards, so input order never shows.
"""

from typing import Iterable
import pandas as pd
import structlog

from models.imports import ClientPreviewGroup, ProjectPreview

logger = structlog.get_logger(__name__)

PREVIEW_COLUMNS = ["client_key", "client_code", "client_name", "project_name", "module"]


def preview_row(
    client_key: str,
    client_name: str,
    project_name: str,
    module: str,
    client_code: str = "",
) -> dict[str, str]:
    """One staged piece as seen by the aggregator."""
    return {
        "client_key": client_key,
        "client_code": client_code,
        "client_name": client_name,
        "project_name": project_name,
        "module": module,
    }


def build_preview(rows: Iterable[dict[str, str]]) -> list[ClientPreviewGroup]:
    """
    Group staged pieces by client, then by project.

    Args:
        rows: Dicts shaped by ``preview_row``. CSV imports key clients by
            client code, PDF imports by client name.

    Returns:
        One ClientPreviewGroup per client key, sorted by client name then
        key; projects sorted by name.
    """
    df = pd.DataFrame(list(rows), columns=PREVIEW_COLUMNS)
    if df.empty:
        return []

    df = df.fillna("")

    projects = (
        df.groupby(["client_key", "project_name"], sort=False)
        .agg(
            piece_count=("module", "size"),
            module_count=("module", "nunique"),
        )
        .reset_index()
    )

    # Several names under one code: show the first in alphabetical order
    clients = (
        df.groupby("client_key", sort=False)
        .agg(client_name=("client_name", "min"), client_code=("client_code", "max"))
        .reset_index()
    )

    groups = []
    for client in clients.itertuples(index=False):
        client_projects = projects[projects["client_key"] == client.client_key]
        project_list = sorted(
            (
                ProjectPreview(
                    name=row.project_name,
                    piece_count=int(row.piece_count),
                    module_count=int(row.module_count),
                )
                for row in client_projects.itertuples(index=False)
            ),
            key=lambda project: project.name,
        )
        groups.append(ClientPreviewGroup(
            client_code=client.client_code,
            client_name=client.client_name,
            total_projects=len(project_list),
            total_modules=sum(p.module_count for p in project_list),
            total_pieces=sum(p.piece_count for p in project_list),
            projects=project_list,
        ))

    groups.sort(key=lambda group: (group.client_name, group.client_code))

    logger.debug(
        "import_preview_built",
        clients=len(groups),
        pieces=sum(g.total_pieces for g in groups),
    )

    return groups
