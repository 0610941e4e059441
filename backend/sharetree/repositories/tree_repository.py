"""Bulk tree loading with recursive CTEs.

One query returns a whole ancestor chain or a whole subtree, so resolving
a path, a permission or a subtree size never issues one query per level.
"""

from typing import Dict, List, Tuple

from sqlalchemy import Integer, literal, select
from sqlalchemy.orm import Session

from ..models.folder import Folder
from ..models.file import File


class TreeRepository:
    """Read-only structural queries over the folders table."""

    def __init__(self, db: Session):
        self.db = db

    def ancestor_chain(self, folder_id: str) -> List[Folder]:
        """The folder and all its ancestors, nearest first. Empty if absent."""
        chain = (
            select(
                Folder.id.label("id"),
                Folder.parent_id.label("parent_id"),
                literal(0, Integer).label("level"),
            )
            .where(Folder.id == folder_id)
            .cte(name="ancestor_chain", recursive=True)
        )
        chain = chain.union_all(
            select(Folder.id, Folder.parent_id, chain.c.level + 1)
            .where(Folder.id == chain.c.parent_id)
        )
        rows = (
            self.db.query(Folder)
            .join(chain, Folder.id == chain.c.id)
            .order_by(chain.c.level)
            .all()
        )
        return rows

    def subtree_folders(self, folder_id: str) -> List[Tuple[Folder, int]]:
        """The folder and every descendant folder with its depth below ``folder_id``."""
        tree = (
            select(Folder.id.label("id"), literal(0, Integer).label("level"))
            .where(Folder.id == folder_id)
            .cte(name="subtree", recursive=True)
        )
        tree = tree.union_all(
            select(Folder.id, tree.c.level + 1)
            .where(Folder.parent_id == tree.c.id)
        )
        return (
            self.db.query(Folder, tree.c.level)
            .join(tree, Folder.id == tree.c.id)
            .order_by(tree.c.level, Folder.name)
            .all()
        )

    def files_in_folders(self, folder_ids: List[str]) -> Dict[str, List[File]]:
        """Files grouped by their folder id."""
        grouped: Dict[str, List[File]] = {fid: [] for fid in folder_ids}
        if not folder_ids:
            return grouped
        files = (
            self.db.query(File)
            .filter(File.folder_id.in_(folder_ids))
            .order_by(File.name)
            .all()
        )
        for f in files:
            grouped[f.folder_id].append(f)
        return grouped
