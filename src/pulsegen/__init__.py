"""pulsegen: LLM code generation checked by the Pulse analyzer."""

from pulsegen._version import __version__
from pulsegen.analyzer.report import parse_report
from pulsegen.core.config import PulseGenConfig, load_config
from pulsegen.loop.engine import FixLoop
from pulsegen.session import Session

__all__ = [
    "__version__",
    "parse_report",
    "PulseGenConfig",
    "load_config",
    "FixLoop",
    "Session",
]
