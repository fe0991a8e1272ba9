"""aito - Agent initiative selection with resilient LLM execution."""

__version__ = "0.1.0"
