"""prompt_pack: pack a project selection into fenced Markdown for an LLM."""

__version__ = "0.3.0"
