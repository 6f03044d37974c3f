"""HTTP application layer.

``farmbid.app.api`` builds the FastAPI app; ``farmbid.app.dependencies``
wires services to request handlers.
"""
