"""Operations (scan, transfer, delete)"""
from .scanner import remote_list_all, local_list_all
from .transfer import pull_file, push_file, rename_local
from .delete import delete_local_if_tracked, delete_remote

__all__ = [
    "remote_list_all", "local_list_all",
    "pull_file", "push_file", "rename_local",
    "delete_local_if_tracked", "delete_remote",
]
