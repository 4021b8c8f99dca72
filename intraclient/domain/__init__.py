"""Domain Layer: value objects, request state, errors and events.

Has no knowledge of the HTTP library or the CLI; the infrastructure layer
implements the interfaces declared here.
"""
