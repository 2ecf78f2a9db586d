from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import Any, Iterable

PATH_SEPARATOR = "/"


@dataclass(eq=False)
class Folder:
    """A node in the folder tree derived from the server's unique paths.

    Children are owned by their parent. The parent link is a weak
    back-reference used for lookups only.
    """

    name: str
    children: list[Folder] = field(default_factory=list)
    _parent_ref: weakref.ReferenceType[Folder] | None = field(default=None, repr=False)

    @property
    def parent(self) -> Folder | None:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def is_root(self) -> bool:
        return self._parent_ref is None

    @property
    def path(self) -> str:
        segments: list[str] = []
        node: Folder | None = self
        while node is not None and not node.is_root:
            segments.append(node.name)
            node = node.parent
        return PATH_SEPARATOR.join(reversed(segments))

    def child(self, name: str) -> Folder | None:
        for candidate in self.children:
            if candidate.name == name:
                return candidate
        return None

    def add_child(self, name: str) -> Folder:
        created = Folder(name=name, _parent_ref=weakref.ref(self))
        self.children.append(created)
        return created

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "children": [child.to_dict() for child in self.children],
        }


def build_tree(paths: Iterable[str]) -> Folder:
    root = Folder(name="")
    for path in paths:
        current = root
        for segment in path.split(PATH_SEPARATOR):
            existing = current.child(segment)
            current = existing if existing is not None else current.add_child(segment)
    return root
