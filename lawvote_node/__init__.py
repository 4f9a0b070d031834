"""
lawvote node package initializer

Keep this module lightweight. Do not import the API or crypto here, so the
pure governance runtime can be used without FastAPI installed.
"""

__all__ = []
