"""forcewatch: push Apex classes and triggers as they change on disk."""

__version__ = "0.1.0"

from forcewatch.classifier import classify, classify_path
from forcewatch.config import WatchConfig, load_config
from forcewatch.controller import ForceWatchController
from forcewatch.dispatcher import DeployDispatcher
from forcewatch.models import ArtifactGroup, ArtifactType, DeployResult, SessionState
from forcewatch.session import SetupError, WatchSession
from forcewatch.subscription import Subscription
from forcewatch.watchers import NotificationSource, SourceError

__all__ = [
    "__version__",
    # Pipeline
    "ForceWatchController",
    "WatchSession",
    "Subscription",
    "DeployDispatcher",
    "classify",
    "classify_path",
    # Models
    "ArtifactGroup",
    "ArtifactType",
    "DeployResult",
    "SessionState",
    # Config
    "WatchConfig",
    "load_config",
    # Errors / protocol
    "NotificationSource",
    "SourceError",
    "SetupError",
]
