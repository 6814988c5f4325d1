"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Send a system + user prompt pair to the Groq chat API.
- Surface transport and API failures as ``LLMError`` so callers decide
  whether to fall back or propagate.
"""
