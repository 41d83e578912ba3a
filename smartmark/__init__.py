"""SmartMark: bookmark storage with LLM categorization."""

__version__ = "0.1.0"
