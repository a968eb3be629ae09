"""Handles storage of a collection of notes.

:class:`notestash.repos.base.Repo` defines an API.
:class:`notestash.repos.local.LocalRepo` stores notes in a directory, while
:class:`notestash.repos.remote.RemoteRepo` stores them in a remote document collection.
"""
