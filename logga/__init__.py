"""
Logga - log shipping agent

Tails an access log from a saved checkpoint and uploads rotated log
archives to an S3-compatible object store.
"""

__version__ = "0.3.0"
