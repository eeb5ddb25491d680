"""metarepo - Keep a workspace of many git repositories in sync with a manifest."""

__version__ = "0.1.0"
