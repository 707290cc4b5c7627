"""API utilities.

- **responses**: orjson-backed JSON response used as the default response class
"""
