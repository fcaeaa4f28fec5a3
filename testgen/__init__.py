"""Selenium AI test case generator: LLM relay, response extraction and code formatting."""
