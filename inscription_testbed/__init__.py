"""Ordinal inscription testbed package."""

from .config import (
    ConfigurationError,
    NodeConfig,
    SignerConfig,
    WorkflowConfig,
    load_testbed_config,
)
from .inscriptions import (
    INSCRIPTION_TYPES,
    ContentType,
    InscriptionForm,
    InscriptionReceipt,
    InscriptionRequest,
    mime_type_for,
)
from .rpc_client import NodeRPCClient, RPCError, RPCTransportError
from .signer import SignerClient, SignerError
from .state import LoadingFlags, SessionPhase, SessionState
from .workflow import InscriptionWorkflow, StepResult

__all__ = [
    "ConfigurationError",
    "NodeConfig",
    "SignerConfig",
    "WorkflowConfig",
    "load_testbed_config",
    "INSCRIPTION_TYPES",
    "ContentType",
    "InscriptionForm",
    "InscriptionReceipt",
    "InscriptionRequest",
    "mime_type_for",
    "NodeRPCClient",
    "RPCError",
    "RPCTransportError",
    "SignerClient",
    "SignerError",
    "LoadingFlags",
    "SessionPhase",
    "SessionState",
    "InscriptionWorkflow",
    "StepResult",
]
