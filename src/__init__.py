"""Application Layer.

Infrastructure adapters that perform I/O on behalf of the domain layer.
"""
