"""
extid - Hierarchical external identifier allocator

Assigns human-readable identifiers along an Office → Center → Group → Client
tree, allocating missing ancestors on the way.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from extid.core.config.models import ExtIdConfig
from extid.core.ids.allocator import HierarchyAllocator
from extid.core.ids.models import AllocationResult, EntityKind

__all__ = ["ExtIdConfig", "HierarchyAllocator", "AllocationResult", "EntityKind", "__version__"]
