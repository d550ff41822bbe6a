from . import files, permissions, workspaces, members

__all__ = ["files", "permissions", "workspaces", "members"]
