"""Helper modules for the Supply Order Desk application."""

__all__ = [
    "invoice",
    "user_types",
]
