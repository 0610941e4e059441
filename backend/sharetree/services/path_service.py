"""Storage keys, storage addresses and display paths.

Two paths exist for every node:

    storage address  users/<root key>/<child key>/.../<node key>
    display path     <root name>/<child name>/.../<node name>

Storage keys are assigned once and never change, so a rename touches no
bytes and a move relocates one directory. Display paths are rebuilt from
the live ancestor chain on every read and can never go stale.
"""

import secrets
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import FolderNotFoundError
from ..models.file import File
from ..models.folder import Folder
from ..repositories.tree_repository import TreeRepository

STORAGE_ROOT_PREFIX = "users"

# URL-safe alphabet used by nanoid.
_KEY_ALPHABET = "_-0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


def new_storage_key(length: Optional[int] = None) -> str:
    """Cryptographically random, URL-safe storage key."""
    size = length or settings.storage_key_length
    return "".join(secrets.choice(_KEY_ALPHABET) for _ in range(size))


def address_of(chain: List[Folder]) -> str:
    """Storage address from a nearest-first ancestor chain."""
    keys = [f.storage_key for f in reversed(chain)]
    return "/".join([STORAGE_ROOT_PREFIX, *keys])


def display_path_of(chain: List[Folder]) -> str:
    """Display path from a nearest-first ancestor chain."""
    return "/".join(f.name for f in reversed(chain))


@dataclass
class SubtreeIndex:
    """A folder subtree loaded in bulk.

    ``children`` maps folder id to child folder ids, ``levels`` gives each
    folder's depth below the subtree root, and ``files`` groups file rows by
    folder id. Traversal uses an explicit stack.
    """

    root_id: str
    folders: Dict[str, Folder] = field(default_factory=dict)
    children: Dict[str, List[str]] = field(default_factory=dict)
    levels: Dict[str, int] = field(default_factory=dict)
    files: Dict[str, List[File]] = field(default_factory=dict)

    @property
    def root(self) -> Folder:
        return self.folders[self.root_id]

    @property
    def folder_ids(self) -> List[str]:
        return list(self.folders)

    @property
    def file_list(self) -> List[File]:
        return [f for group in self.files.values() for f in group]

    @property
    def height(self) -> int:
        """Depth of the deepest folder below the subtree root."""
        return max(self.levels.values(), default=0)

    def __contains__(self, folder_id: str) -> bool:
        return folder_id in self.folders

    def walk(self) -> Iterator[Folder]:
        """Pre-order traversal from the subtree root."""
        stack = [self.root_id]
        while stack:
            folder_id = stack.pop()
            yield self.folders[folder_id]
            stack.extend(reversed(self.children.get(folder_id, [])))

    def bottom_up(self) -> List[Folder]:
        """Folders ordered deepest first."""
        return sorted(self.folders.values(), key=lambda f: self.levels[f.id], reverse=True)


class PathService:
    """Path and depth derivation over one session.

    Public methods:
        ancestor_chain      -- folder plus ancestors, nearest first
        depth               -- edges from a folder to its root
        storage_address     -- physical address of a folder
        display_path        -- human path of a folder
        file_storage_address / file_display_path -- the same for a file
        subtree             -- bulk-loaded SubtreeIndex
    """

    def __init__(self, db: Session):
        self.db = db
        self.tree = TreeRepository(db)

    def ancestor_chain(self, folder_id: str) -> List[Folder]:
        chain = self.tree.ancestor_chain(folder_id)
        if not chain:
            raise FolderNotFoundError(folder_id)
        return chain

    def depth(self, folder_id: str) -> int:
        return len(self.ancestor_chain(folder_id)) - 1

    def storage_address(self, folder_id: str) -> str:
        return address_of(self.ancestor_chain(folder_id))

    def display_path(self, folder_id: str) -> str:
        return display_path_of(self.ancestor_chain(folder_id))

    def file_storage_address(self, stored: File) -> str:
        return f"{self.storage_address(stored.folder_id)}/{stored.storage_key}"

    def file_display_path(self, stored: File) -> str:
        return f"{self.display_path(stored.folder_id)}/{stored.name}"

    def subtree(self, folder_id: str, with_files: bool = True) -> SubtreeIndex:
        rows = self.tree.subtree_folders(folder_id)
        if not rows:
            raise FolderNotFoundError(folder_id)

        index = SubtreeIndex(root_id=folder_id)
        for folder, level in rows:
            index.folders[folder.id] = folder
            index.levels[folder.id] = level
            index.children.setdefault(folder.id, [])
        for folder, _ in rows:
            if folder.id != folder_id and folder.parent_id in index.children:
                index.children[folder.parent_id].append(folder.id)

        if with_files:
            index.files = self.tree.files_in_folders(index.folder_ids)
        return index
