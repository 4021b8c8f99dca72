"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the client to the outside world (HTTP transport, token endpoint,
configuration files, terminal output) by implementing the interfaces defined
in the domain layer.
"""
