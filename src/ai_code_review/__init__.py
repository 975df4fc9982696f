"""
DeepSeek AI Code Review: chunked, retried and merged LLM code reviews
"""

__version__ = "0.1.0"
