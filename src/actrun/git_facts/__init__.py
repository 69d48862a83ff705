from .git import GitInfo, GitRepo, read_git_info

__all__ = ["GitInfo", "GitRepo", "read_git_info"]
