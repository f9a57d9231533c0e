"""Named backoff policies: local registries and the process-wide instance."""

from .registry import (
    PolicyRegistry,
    clear_global_policies,
    get_global_policy,
    get_registry,
    list_global_policies,
    load_policies,
    register_global_policy,
    remove_global_policy,
)

__all__ = [
    "PolicyRegistry", "get_registry",
    "register_global_policy", "get_global_policy", "remove_global_policy",
    "list_global_policies", "clear_global_policies", "load_policies",
]
