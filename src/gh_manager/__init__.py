"""gh-manager: gh_manager/__init__.py."""

__version__ = "0.4.0"


def encode_name_for_path(name: str) -> str:
    """Replace '/' with '_' so a repository name is a single path segment."""
    return name.replace("/", "_")
