"""Domain Event definitions.

Represents significant occurrences in the request pipeline (token refresh,
retries, deferrals) that observers might react to.
"""
