"""Process-wide runtime: the singleton orchestrator used by the CLI and HTTP API."""
import logging
from typing import Optional

from .. import config
from ..errors import PersistenceError
from ..session.history import HistoryStore
from .backend import GeminiBackend
from .orchestrator import Orchestrator

logger = logging.getLogger(__name__)

_orchestrator: Optional[Orchestrator] = None


def create_orchestrator(history_path: Optional[str] = None, backend=None) -> Orchestrator:
    """Build an orchestrator with a loaded history store."""
    history = HistoryStore(
        path=history_path or config.HISTORY_FILE,
        quota_bytes=config.HISTORY_QUOTA_BYTES,
    )
    orchestrator = Orchestrator(backend or GeminiBackend(), history)
    try:
        history.load()
    except PersistenceError as e:
        logger.warning("%s: %s", e.title, e.message)
        orchestrator.warnings.append(e.message)
    return orchestrator


def get_orchestrator() -> Orchestrator:
    """Get the global orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = create_orchestrator()
    return _orchestrator


def set_orchestrator(orchestrator: Optional[Orchestrator]):
    """Replace the global orchestrator (None drops it)."""
    global _orchestrator
    _orchestrator = orchestrator
