"""目录树组装：把扁平的目录列表与文档计数组装为嵌套树。

不访问数据库；调用方先取出目录列表与 ``{directory_id: count}``，再交给 ``build_tree``。
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from app.packages.wiki.core.timezone import format_datetime
from app.packages.wiki.models.directory import Directory
from app.packages.wiki.utils.path_utils import get_level

TreeNode = Dict[str, Any]


def build_tree(
    directories: Iterable[Directory],
    document_counts: Optional[Mapping[int, int]] = None,
) -> List[TreeNode]:
    """返回按 ``sort_order, id`` 排序的树形结构。

    - ``document_count``：目录自身直接挂载的文档数，计数表中缺失视为 0；
    - ``total_document_count``：自身计数加上所有子节点的 ``total_document_count``；
    - ``parent_id`` 为空的节点是顶层节点；父节点不在输入中的节点（例如只取了某个子树）
      同样作为顶层节点返回，而不是被丢弃。
    """
    counts = document_counts or {}
    items = list(directories)
    known_ids = {item.id for item in items}

    children_map: Dict[Optional[int], List[Directory]] = defaultdict(list)
    for item in items:
        parent_key = item.parent_id if item.parent_id in known_ids else None
        children_map[parent_key].append(item)

    # 同级排序：sort_order -> id
    for siblings in children_map.values():
        siblings.sort(key=lambda n: (n.sort_order, n.id))

    def build(node: Directory) -> TreeNode:
        children = [build(child) for child in children_map.get(node.id, [])]
        own_count = int(counts.get(node.id, 0))
        return {
            "id": node.id,
            "name": node.name,
            "description": node.description,
            "parent_id": node.parent_id,
            "path": node.path,
            "sort_order": node.sort_order,
            "created_at": format_datetime(node.created_at),
            "updated_at": format_datetime(node.updated_at),
            "level": get_level(node.path),
            "document_count": own_count,
            "total_document_count": own_count + sum(c["total_document_count"] for c in children),
            "children": children,
        }

    return [build(root) for root in children_map.get(None, [])]


def flatten_tree(nodes: Iterable[TreeNode]) -> List[TreeNode]:
    """前序遍历展开树，父节点总是排在其子节点之前。"""
    result: List[TreeNode] = []
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        result.append(node)
        stack.extend(reversed(node["children"]))
    return result


def find_node(nodes: Iterable[TreeNode], predicate: Callable[[TreeNode], bool]) -> Optional[TreeNode]:
    """深度优先查找第一个满足条件的节点。"""
    for node in flatten_tree(nodes):
        if predicate(node):
            return node
    return None
