"""Manages a personal collection of text notes stored in a directory or a remote document store.

To use the Python API, look at :class:`notestash.api.Notestash`
"""
