"""
llm-prompt: send a single prompt to a local LLM completion endpoint.

Provides:
- A one-shot CLI (``llm-prompt``) for OpenAI-compatible /v1/completions servers
- A FastAPI echo endpoint for local smoke tests
"""

__version__ = "0.1.0"
__author__ = "llm-prompt contributors"
