from .tree_walker import FLAT, CollectionShape, TreeWalker
from .conductor_walker import ConductorTreeWalker

__all__ = ["FLAT", "CollectionShape", "TreeWalker", "ConductorTreeWalker"]
