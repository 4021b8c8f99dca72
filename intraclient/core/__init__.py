"""Core Application Layer: the public client facade and pagination.

Connects the domain layer with the infrastructure layer.
"""
