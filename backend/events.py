"""
Event Scheduler

At most one global event is active at a time. An event counts down one day
per tick and clears when it runs out; a new one can only start at the end of
an accounting cycle while nothing else is active.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np

from catalog import ALL_CATEGORIES, Commodity, EVENT_TEMPLATES, EventScope, EventTemplate
from config import CONFIG, EventConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GlobalEvent:
    name: str
    description: str
    category: EventScope
    multiplier: float
    duration: int
    remaining_days: int

    @classmethod
    def from_template(cls, template: EventTemplate, duration: int) -> "GlobalEvent":
        return cls(
            name=template.name,
            description=template.description,
            category=template.category,
            multiplier=template.multiplier,
            duration=duration,
            remaining_days=duration,
        )

    def to_dict(self) -> Dict[str, object]:
        category = self.category if self.category == ALL_CATEGORIES else self.category.value
        return {
            "name": self.name,
            "description": self.description,
            "category": category,
            "multiplier": self.multiplier,
            "duration": self.duration,
            "remainingDays": self.remaining_days,
        }


def event_applies_to(event: GlobalEvent, commodity: Commodity) -> bool:
    return event.category == ALL_CATEGORIES or event.category == commodity.category


def tick_event(event: Optional[GlobalEvent]) -> Optional[GlobalEvent]:
    """Count the active event down by one day; None once it expires."""
    if event is None:
        return None
    remaining = event.remaining_days - 1
    if remaining <= 0:
        logger.info(f"Event ended: {event.name}")
        return None
    return GlobalEvent(
        name=event.name,
        description=event.description,
        category=event.category,
        multiplier=event.multiplier,
        duration=event.duration,
        remaining_days=remaining,
    )


def maybe_trigger_event(
    event: Optional[GlobalEvent],
    cycle_progress: int,
    cycle_length: int,
    rng: np.random.Generator,
    templates: Sequence[EventTemplate] = EVENT_TEMPLATES,
    config: EventConfig = CONFIG.events,
) -> Optional[GlobalEvent]:
    """
    Possibly start a new event at the end of an accounting cycle.

    A new event never replaces an active one. When the cycle has completed and
    the market is quiet, a draw above ``trigger_threshold`` picks a template
    uniformly and a duration uniformly from [min_duration, max_duration].

    Args:
        event: Event in force after today's countdown
        cycle_progress: Cycle progress after today's increment
        cycle_length: Days per accounting cycle
        rng: Seedable random source
        templates: Pool to draw from
        config: Event constants

    Returns:
        The event in force for the rest of the day
    """
    if event is not None or cycle_progress < cycle_length or not templates:
        return event
    if rng.random() <= config.trigger_threshold:
        return None

    template = templates[int(rng.integers(len(templates)))]
    duration = int(rng.integers(config.min_duration_days, config.max_duration_days + 1))
    logger.info(f"Event started: {template.name} for {duration} days (x{template.multiplier})")
    return GlobalEvent.from_template(template, duration)
