from .dicts import deep_merge, get_path, set_path, split_path

__all__ = ["deep_merge", "get_path", "set_path", "split_path"]
