"""Collaborator interfaces for the community data behind the API.

The relational store and the credential service are external systems; the
HTTP handlers only talk to them through the narrow interfaces in ``base``.
"""
