"""
Application shell: root routing decision, auth forms and the cold-start runner.
"""

__all__ = [
    "auth_flow",
    "handler",
    "root",
]
