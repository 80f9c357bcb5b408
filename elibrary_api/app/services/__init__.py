"""
Service layer.

Each service encapsulates business logic for a domain and receives
its collaborators (repositories, cover storage, audit) in its
constructor.
"""
