# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Decision logging for claimgate.

Every operation an evaluation environment executes leaves one entry here,
whether it was allowed, denied or failed in the backend.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import asyncio
import uuid


@dataclass
class DecisionEvent:
    """One logged decision."""
    principal: str
    operation: str
    resource: str
    allowed: bool
    reason: str
    environment_id: Optional[str] = None
    session_id: Optional[str] = None
    outcome: str = ""
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'event_id': self.event_id,
            'timestamp': self.timestamp.isoformat(),
            'environment_id': self.environment_id,
            'session_id': self.session_id,
            'principal': self.principal,
            'operation': self.operation,
            'resource': self.resource,
            'allowed': self.allowed,
            'reason': self.reason,
            'outcome': self.outcome
        }


class DecisionLog(ABC):
    """Abstract base class for decision logs"""

    @abstractmethod
    async def log(self, event: DecisionEvent) -> None:
        """Log a decision event"""
        pass

    @abstractmethod
    async def get_events(
        self,
        principal: Optional[str] = None,
        allowed: Optional[bool] = None,
        resource: Optional[str] = None,
    ) -> List[DecisionEvent]:
        """Retrieve decision events with optional filtering"""
        pass

    async def close(self) -> None:
        """Close the log and release resources"""
        pass


class MemoryDecisionLog(DecisionLog):
    """In-memory decision log"""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self.events: deque = deque(maxlen=max_entries)
        self._lock = asyncio.Lock()

    async def log(self, event: DecisionEvent) -> None:
        async with self._lock:
            self.events.append(event)

    async def get_events(
        self,
        principal: Optional[str] = None,
        allowed: Optional[bool] = None,
        resource: Optional[str] = None,
    ) -> List[DecisionEvent]:
        async with self._lock:
            filtered_events = []

            for event in self.events:
                if principal and event.principal != principal:
                    continue

                if allowed is not None and event.allowed != allowed:
                    continue

                if resource and event.resource != resource:
                    continue

                filtered_events.append(event)

            return filtered_events

    async def close(self) -> None:
        async with self._lock:
            self.events.clear()
