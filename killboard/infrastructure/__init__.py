"""Infrastructure layer: persistence behind the ``Store`` protocol.

Route handlers only see ``Store``; the async PostgreSQL engine, session
lifecycle and query logging live here.
"""
