"""Domain Interfaces (Ports).

Defines the abstract contracts the core relies on, implemented by the
infrastructure layer.
"""
