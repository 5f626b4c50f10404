"""An interactive shell with pipes, redirections, here-documents and expansion."""

__version__ = "0.1.0"

__all__ = ["env", "tokens", "syntax", "expand", "tree", "executor", "shell"]