"""
ScriptMenu Command Tree Package.

The directory-backed command tree and its synchronizer.
Requires Python 3.11+.
"""

from commands.models import CommandNode, Group, Leaf, NodeKind, to_dict
from commands.synchronizer import SyncStats, TreeSynchronizer

__all__ = [
    "CommandNode",
    "Group",
    "Leaf",
    "NodeKind",
    "to_dict",
    "SyncStats",
    "TreeSynchronizer",
]
