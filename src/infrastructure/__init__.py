"""Infrastructure Layer.

Adapters that perform I/O and return domain Value Objects.
This layer handles files and coordinates domain operations.
"""
