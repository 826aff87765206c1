"""Index artifact storage and ownership utilities."""

__all__ = ["IndexStore", "PermissionEscalator", "probe"]


def __getattr__(name: str):
    if name == "IndexStore":
        from storage.index_store import IndexStore

        return IndexStore
    if name == "PermissionEscalator":
        from storage.permissions import PermissionEscalator

        return PermissionEscalator
    if name == "probe":
        from storage.diagnostics import probe

        return probe
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
