import logging

from app.core.identity import Identity
from app.models.verdict import Verdict

logger = logging.getLogger("rules.audit")

def log_decision(identity: Identity, action: str, path: str, verdict: Verdict):
    """
    Records one policy decision. Nothing is persisted; the decision log is
    the process log, picked up by whatever collects it.
    """
    actor = identity.uid if identity.is_authenticated() else "anonymous"
    if verdict.allowed:
        logger.info(f"ALLOW {action} {path} by {actor}")
    else:
        reason = verdict.reason.value if verdict.reason else "unknown"
        logger.info(f"DENY {action} {path} by {actor}: {reason} {verdict.detail}".rstrip())
