"""
Tests for the LangChain retriever adapter.
"""
