"""Domain Events related to API calls, tokens and resilience.

Examples include events for when calls are deferred, retried, fail, or succeed,
and when the cached access token is acquired or invalidated.
"""

from dataclasses import dataclass, field
import time
from typing import Callable, Optional

# Base Event Class
@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass

# Receives every event emitted by a client instance.
EventListener = Callable[[DomainEvent], None]

# --- Request Events ---

@dataclass
class RequestSucceeded(DomainEvent):
    """Event triggered when an attempt returns a 2xx response."""
    method: str
    route: str
    status_code: int
    attempt: int
    latency_ms: float
    page: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class RequestFailed(DomainEvent):
    """Event triggered when a logical request fails definitively (after retries)."""
    method: str
    route: str
    status_code: Optional[int]
    error_kind: str
    swallowed: bool
    page: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class RequestDeferred(DomainEvent):
    """Event triggered when an attempt must wait at the rate gate."""
    method: str
    route: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed attempt."""
    method: str
    route: str
    status_code: int
    attempt_number: int
    delay_seconds: float
    page: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

# --- Token Events ---

@dataclass
class TokenAcquired(DomainEvent):
    """Event triggered when a client-credentials token is fetched and cached."""
    token_url: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class TokenInvalidated(DomainEvent):
    """Event triggered when the cached token is discarded after a 401."""
    cleared: bool  # False when a newer token had already replaced the stale one
    timestamp: float = field(default_factory=time.time)
