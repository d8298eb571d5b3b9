"""Derive stable selectors for rendered nodes and turn them back into matchers."""

from __future__ import annotations

from typing import List, Optional

import soupsieve as sv
from bs4 import BeautifulSoup, Tag

from .errors import SelectorError


def _scope_of(node: Tag, root: Optional[Tag]) -> Tag:
    if root is not None:
        return root
    scope = node
    while isinstance(scope.parent, Tag) and not isinstance(scope.parent, BeautifulSoup):
        scope = scope.parent
    return scope


def has_unique_id(node: Tag, root: Optional[Tag] = None) -> bool:
    node_id = node.get("id")
    if not node_id or not isinstance(node_id, str) or not node_id.strip():
        return False
    scope = _scope_of(node, root)
    count = len(scope.find_all(id=node_id))
    if scope.get("id") == node_id and scope is not node:
        count += 1
    return count <= 1


def nth_of_type(node: Tag) -> int:
    parent = node.parent
    if parent is None:
        return 1
    position = 0
    for sibling in parent.find_all(node.name, recursive=False):
        position += 1
        if sibling is node:
            return position
    return 1


def compute(node: Tag, root: Optional[Tag] = None) -> str:
    """Return the selector for ``node``: ``#id``, else ``.firstClass``, else ``tag:nth-of-type(k)``.

    ``root`` bounds the id uniqueness check; without it the node's topmost
    ancestor is used.
    """
    if has_unique_id(node, root):
        return f"#{sv.escape(node['id'])}"
    classes = node.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    classes = [c for c in classes if c.strip()]
    if classes:
        return f".{sv.escape(classes[0])}"
    return f"{node.name}:nth-of-type({nth_of_type(node)})"


class SelectorMatcher:
    """Compiled selector that re-locates every matching node under a root."""

    def __init__(self, selector: str) -> None:
        self.selector = selector
        try:
            self._pattern = sv.compile(selector)
        except sv.SelectorSyntaxError as exc:
            raise SelectorError(f"Invalid selector {selector!r}: {exc}") from exc

    def select(self, root: Tag) -> List[Tag]:
        return list(self._pattern.select(root))

    def matches(self, node: Tag) -> bool:
        return bool(self._pattern.match(node))

    def __repr__(self) -> str:
        return f"SelectorMatcher({self.selector!r})"


def parse(selector: str) -> SelectorMatcher:
    return SelectorMatcher(selector)
