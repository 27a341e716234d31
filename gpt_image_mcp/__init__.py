"""MCP server for image generation with OpenAI GPT-Image-1."""

__version__ = "1.0.0"
