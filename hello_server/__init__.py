"""
Single-endpoint HTTP server that logs request headers and answers
GET / with {"msg": "hello"}, with an orderly SIGINT/SIGTERM shutdown.
"""

__version__ = "1.0.0"
