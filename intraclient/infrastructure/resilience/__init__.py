"""API Resilience Implementations.

Contains the shared rate gate and the retry dispatcher that drives every
request through it.
Bounded Context: API Resilience
"""
