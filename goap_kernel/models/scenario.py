"""Scenario activation — when a trouble-pattern rule is allowed to fire."""

from typing import Optional

from pydantic import BaseModel


class ScenarioActivation(BaseModel):
    """Temporal window for a scenario rule."""

    always: bool = True
    schedule: Optional[str] = None          # Cron expression, e.g. "* 6-22 * * 1-5"
