"""Integration Automation Engine.

Compose cross-application automations (trigger -> conditions -> actions):
- build and validate workflows
- package them as installable marketplace templates
- dry-run them through a stepwise test harness
"""

__version__ = "0.1.0"

from integration_automation.engine.config import EngineSettings

__all__ = ["__version__", "EngineSettings"]
