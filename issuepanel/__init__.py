"""Issue panel of a code-quality server: issue detail, actions and widgets."""

__version__ = "0.1.0"
