"""
AiLand - AI-generated landing content for storefronts.

This package orchestrates a two-stage LLM workflow against an OpenRouter-style
chat completions API: a "thinking" model drafts a technical design plan, then a
"rendering" model turns that plan into HTML. The model may call registered
tools mid-conversation.
"""

__version__ = "0.1.0"
