"""LLM client infrastructure."""

from .client import VertexRestClient, extract_json_object

__all__ = ["VertexRestClient", "extract_json_object"]
