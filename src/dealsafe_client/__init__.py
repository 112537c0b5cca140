"""
DealSafe voucher client: ingestion and upload orchestration.

This package turns camera captures, picked files and shared content into
uploads against the DealSafe backend, tracks the analysed vouchers and keeps
the local list reconciled with the server.
"""

__all__ = [
    "config",
    "errors",
    "logging",
    "paths",
]
