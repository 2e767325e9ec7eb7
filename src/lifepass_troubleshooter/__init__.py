"""LifePass Troubleshooter.

Guided troubleshooting workflows for the LifePass ski-resort operations console:
- a validated catalog of decision/action/outcome workflows
- a pure navigation state machine with backtracking
- session records and telemetry for every operator decision
- an interactive CLI and a REST API over the same engine
"""

__version__ = "0.1.0"

from lifepass_troubleshooter.troubleshooter.config import TroubleshooterSettings

__all__ = ["__version__", "TroubleshooterSettings"]
